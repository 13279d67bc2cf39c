"""
Messaging Module - Business Logic Service

A conversation belongs to a household. Household members and front desk
staff (see ``can_message_household``) may open and use it.
"""
import uuid
from typing import Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.models import as_utc, utc_now
from src.modules.auth.models import User
from src.modules.messaging.models import (
    ACTIVE_CALL_STATUSES,
    CallSession,
    CallStatus,
    CallType,
    Conversation,
    ConversationType,
    Message,
)
from src.modules.messaging.schemas import (
    CallAction,
    CallStart,
    ConversationOpen,
    ConversationResponse,
    MessageCreate,
)
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Household
from src.modules.property.permissions import (
    can_message_household,
    get_household_member_ids,
    get_household_role,
    household_ids_of,
)

logger = get_logger(__name__)


class MessagingService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Access ==============

    async def _get_household(self, household_id: uuid.UUID) -> Household:
        household = await self.db.get(Household, household_id)
        if not household:
            raise NotFoundError("Household", household_id)
        return household

    async def _is_household_member(self, household_id: uuid.UUID) -> bool:
        return await get_household_role(self.db, self.user.id, household_id) is not None

    async def _get_conversation(self, conversation_id: uuid.UUID) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if not conversation:
            raise NotFoundError("Conversation", conversation_id)
        if conversation.created_by == self.user.id or await self._is_household_member(conversation.household_id):
            return conversation
        household = await self._get_household(conversation.household_id)
        if not await can_message_household(self.db, self.user, household):
            raise ForbiddenError("Insufficient permissions")
        return conversation

    async def _recipients(self, conversation: Conversation) -> list[uuid.UUID]:
        members = await get_household_member_ids(self.db, conversation.household_id)
        if conversation.created_by is not None:
            members.append(conversation.created_by)
        return [user_id for user_id in dict.fromkeys(members) if user_id != self.user.id]

    # ============== Conversations ==============

    async def list_conversations(self) -> list[ConversationResponse]:
        """Conversations of the caller, most recent activity first, with unread counts."""
        stmt = select(Conversation)
        if not self.user.is_admin:
            stmt = stmt.where(or_(
                Conversation.household_id.in_(household_ids_of(self.user.id)),
                Conversation.created_by == self.user.id,
            ))
        conversations = (await self.db.execute(stmt.order_by(Conversation.updated_at.desc()))).scalars().all()
        if not conversations:
            return []

        unread_rows = await self.db.execute(
            select(Message.conversation_id, func.count(Message.id))
            .where(
                Message.conversation_id.in_([c.id for c in conversations]),
                Message.read_at.is_(None),
                or_(Message.sender_id.is_(None), Message.sender_id != self.user.id),
            )
            .group_by(Message.conversation_id)
        )
        unread = dict(unread_rows.all())

        responses = []
        for conversation in conversations:
            response = ConversationResponse.model_validate(conversation)
            response.unread_count = unread.get(conversation.id, 0)
            responses.append(response)
        return responses

    async def get_or_create_conversation(self, data: ConversationOpen) -> Conversation:
        household = await self._get_household(data.household_id)
        if await self._is_household_member(household.id):
            conversation_type = ConversationType.HOUSEHOLD
        elif await can_message_household(self.db, self.user, household):
            conversation_type = ConversationType.FRONT_DESK
        else:
            raise ForbiddenError("Insufficient permissions")

        building_id = data.building_id or household.building_id
        stmt = select(Conversation).where(Conversation.household_id == household.id)
        if building_id is None:
            stmt = stmt.where(Conversation.building_id.is_(None))
        else:
            stmt = stmt.where(Conversation.building_id == building_id)
        existing = await self.db.scalar(stmt.order_by(Conversation.created_at).limit(1))
        if existing:
            return existing

        conversation = Conversation(
            household_id=household.id,
            building_id=building_id,
            created_by=self.user.id,
            title=data.title or household.name,
            type=conversation_type.value,
        )
        self.db.add(conversation)
        await self.db.commit()
        await self.db.refresh(conversation)
        logger.info("Conversation created", conversation_id=str(conversation.id), household_id=str(household.id))
        return conversation

    # ============== Messages ==============

    async def list_messages(self, conversation_id: uuid.UUID, limit: int = 100) -> Sequence[Message]:
        await self._get_conversation(conversation_id)
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .limit(limit)
        )
        return result.scalars().all()

    async def send_message(self, conversation_id: uuid.UUID, data: MessageCreate) -> Message:
        conversation = await self._get_conversation(conversation_id)
        content = data.content.strip()
        if not content:
            raise BadRequestError("Message content cannot be empty")

        now = utc_now()
        message = Message(
            conversation_id=conversation.id,
            sender_id=self.user.id,
            content=content,
            message_type=data.message_type.value,
            message_metadata=data.metadata,
        )
        self.db.add(message)
        conversation.last_message_at = now
        conversation.updated_at = now
        await self.db.flush()

        await NotificationService(self.db).send_bulk(
            await self._recipients(conversation),
            title=f"New message from {self.user.full_name or self.user.email}",
            message=content[:200],
            type=NotificationType.MESSAGE,
            data={"conversation_id": str(conversation.id), "message_id": str(message.id)},
            source_type="conversation",
            source_id=conversation.id,
        )
        await self.db.commit()
        await self.db.refresh(message)
        return message

    async def mark_read(self, conversation_id: uuid.UUID) -> int:
        await self._get_conversation(conversation_id)
        result = await self.db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.read_at.is_(None),
                or_(Message.sender_id.is_(None), Message.sender_id != self.user.id),
            )
            .values(read_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0

    # ============== Calls ==============

    async def start_call(self, conversation_id: uuid.UUID, data: CallStart) -> CallSession:
        """
        Ring the conversation.

        Only one call may be ringing or answered per conversation. A second
        attempt is still recorded, as auto-rejected, before the 409.
        """
        conversation = await self._get_conversation(conversation_id)
        if data.call_type not in (CallType.AUDIO.value, CallType.VIDEO.value):
            raise BadRequestError('call_type must be "audio" or "video"')

        now = utc_now()
        active = await self.db.scalar(
            select(CallSession)
            .where(
                CallSession.conversation_id == conversation.id,
                CallSession.status.in_(ACTIVE_CALL_STATUSES),
            )
            .order_by(CallSession.started_at.desc())
            .limit(1)
        )
        if active is not None:
            rejected = CallSession(
                conversation_id=conversation.id,
                caller_id=self.user.id,
                receiver_id=data.receiver_id,
                call_type=data.call_type,
                status=CallStatus.AUTO_REJECTED.value,
                rejection_reason="Call already active",
                started_at=now,
                ended_at=now,
            )
            self.db.add(rejected)
            # Persist the rejected attempt; the raised error rolls back anything after this
            await self.db.commit()
            logger.info(
                "Call auto-rejected",
                conversation_id=str(conversation.id),
                active_call_id=str(active.id),
            )
            raise ConflictError(
                "There is already an active call in this conversation",
                code="CALL_OCCUPIED",
                details={
                    "call_session_id": str(rejected.id),
                    "active_call_id": str(active.id),
                    "active_call_type": active.call_type,
                    "active_call_started_at": as_utc(active.started_at).isoformat(),
                },
            )

        session = CallSession(
            conversation_id=conversation.id,
            caller_id=self.user.id,
            receiver_id=data.receiver_id,
            call_type=data.call_type,
            status=CallStatus.RINGING.value,
            started_at=now,
        )
        self.db.add(session)
        await self.db.flush()

        await NotificationService(self.db).send_bulk(
            [data.receiver_id] if data.receiver_id else await self._recipients(conversation),
            title=f"Incoming {data.call_type} call",
            message=f"{self.user.full_name or self.user.email} is calling",
            type=NotificationType.MESSAGE,
            data={"conversation_id": str(conversation.id), "call_session_id": str(session.id)},
            source_type="call_session",
            source_id=session.id,
        )
        await self.db.commit()
        await self.db.refresh(session)
        logger.info("Call started", call_session_id=str(session.id), call_type=session.call_type)
        return session

    async def update_call(self, conversation_id: uuid.UUID, call_id: uuid.UUID, action: CallAction) -> CallSession:
        await self._get_conversation(conversation_id)
        session = await self.db.get(CallSession, call_id)
        if not session or session.conversation_id != conversation_id:
            raise NotFoundError("CallSession", call_id)

        now = utc_now()
        if action in (CallAction.ANSWER, CallAction.REJECT):
            if session.status != CallStatus.RINGING.value:
                raise BadRequestError(f"Cannot {action.value} a call that is {session.status}")
            if action == CallAction.ANSWER:
                session.status = CallStatus.ANSWERED.value
                session.answered_at = now
                if session.receiver_id is None:
                    session.receiver_id = self.user.id
            else:
                session.status = CallStatus.REJECTED.value
                session.ended_at = now
        else:
            if session.status not in ACTIVE_CALL_STATUSES:
                raise BadRequestError(f"Cannot end a call that is {session.status}")
            session.status = CallStatus.ENDED.value
            session.ended_at = now
            session.duration = (
                int((now - as_utc(session.answered_at)).total_seconds()) if session.answered_at else 0
            )

        await self.db.commit()
        await self.db.refresh(session)
        logger.info("Call updated", call_session_id=str(session.id), status=session.status)
        return session
