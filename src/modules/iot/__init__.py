"""
IoT Module - Household devices from Tuya, ESP, Midea, Philips Hue and Panasonic.
"""
