"""Import all models so Base.metadata knows every table."""
from convo_service.infrastructure.db.models.conversation import ConversationModel
from convo_service.infrastructure.db.models.membership import MembershipModel
from convo_service.infrastructure.db.models.message import MessageModel
from convo_service.infrastructure.db.models.notification import NotificationModel
from convo_service.infrastructure.db.models.participant import ParticipantModel
from convo_service.infrastructure.db.models.user import UserModel

__all__ = [
    "ConversationModel",
    "MembershipModel",
    "MessageModel",
    "NotificationModel",
    "ParticipantModel",
    "UserModel",
]
