"""Import every model so Base.metadata knows about all tables."""
from anondo.models.user import User  # noqa: F401
from anondo.models.participant import EventParticipant, ParticipantStatus  # noqa: F401
from anondo.models.taxonomy import Category, Tag, event_categories, event_tags  # noqa: F401
from anondo.models.event import Event, EventStatus  # noqa: F401
from anondo.models.image import EventImage  # noqa: F401
from anondo.models.comment import Comment, CommentLike  # noqa: F401
from anondo.models.follow import Follow  # noqa: F401
