"""Data models for the Bay Digital customer dashboard."""

# Import SQLAlchemy ORM models to register them with Base.metadata
# so Base.metadata knows every table (alembic and the test fixtures rely on it)
from baydigital.models.account import (  # noqa: F401
    Account,
    AccountSummary,
    AppRole,
    Plan,
    Site,
    SiteDB,
    SiteStatus,
    SubscriptionAccess,
    SubscriptionStatus,
    UserDB,
    UserRoleDB,
    WebsiteAssetDB,
)
from baydigital.models.notification import (  # noqa: F401
    Notification,
    NotificationDB,
    NotificationType,
)
from baydigital.models.social import (  # noqa: F401
    PostStatus,
    SocialConnectionDB,
    SocialPlatform,
    SocialPost,
    SocialPostCreate,
    SocialPostDB,
)
from baydigital.models.submission import (  # noqa: F401
    ContactFormSubmission,
    FormSubmission,
    FormSubmissionDB,
    SubmissionStatus,
)
from baydigital.models.ticket import (  # noqa: F401
    Ticket,
    TicketCreate,
    TicketDB,
    TicketMessage,
    TicketMessageDB,
    TicketMessageReadDB,
    TicketPriority,
    TicketStatus,
)
from baydigital.models.webhook import ProcessedWebhookEventDB, WebhookOutcome  # noqa: F401

__all__ = [
    # Account models
    "Account",
    "AccountSummary",
    "AppRole",
    "Plan",
    "Site",
    "SiteStatus",
    "SubscriptionAccess",
    "SubscriptionStatus",
    # Notification models
    "Notification",
    "NotificationType",
    # Ticket models
    "Ticket",
    "TicketCreate",
    "TicketMessage",
    "TicketPriority",
    "TicketStatus",
    # Social models
    "PostStatus",
    "SocialPlatform",
    "SocialPost",
    "SocialPostCreate",
    # Submission models
    "ContactFormSubmission",
    "FormSubmission",
    "SubmissionStatus",
    # Webhook ledger
    "WebhookOutcome",
]
