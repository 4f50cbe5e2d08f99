"""Enum definitions for application constants."""

from enum import Enum


class _ValueEnum(str, Enum):
    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid member value."""
        return value in cls._value2member_map_


class Role(_ValueEnum):
    """
    User roles.

    - SUPER_ADMIN: Platform owner, passes every role check
    - ADMIN: Organization admin (billing, API keys, integrations)
    - MANAGER: Team lead (projects, payouts, assignment)
    - AGENT: CRM support/sales agent
    - DEV: ChronusDev developer (sees only member projects)
    - VIEWER: Read-only
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    AGENT = "AGENT"
    DEV = "DEV"
    VIEWER = "VIEWER"


class Plan(_ValueEnum):
    FREE = "FREE"
    STARTER = "STARTER"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(_ValueEnum):
    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"
    CANCELLED = "CANCELLED"


class CustomerStatus(_ValueEnum):
    ACTIVE = "ACTIVE"
    TRIAL = "TRIAL"
    INACTIVE = "INACTIVE"
    CHURNED = "CHURNED"


class LeadStatus(_ValueEnum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    QUALIFIED = "QUALIFIED"
    PROPOSAL = "PROPOSAL"
    NEGOTIATION = "NEGOTIATION"
    WON = "WON"
    LOST = "LOST"


class LeadSource(_ValueEnum):
    MANUAL = "MANUAL"
    WEBHOOK = "WEBHOOK"
    REFERRAL = "REFERRAL"
    SOCIAL = "SOCIAL"
    EMAIL = "EMAIL"
    OTHER = "OTHER"


class TicketStatus(_ValueEnum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING = "WAITING"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class Priority(_ValueEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class InvoiceType(_ValueEnum):
    INVOICE = "INVOICE"
    QUOTE = "QUOTE"


class InvoiceStatus(_ValueEnum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class IntegrationProvider(_ValueEnum):
    ASSISTAI = "ASSISTAI"
    GOOGLE = "GOOGLE"
    GMAIL = "GMAIL"
    WHATSAPP = "WHATSAPP"
    STRIPE = "STRIPE"


class ConversationPlatform(_ValueEnum):
    ASSISTAI = "ASSISTAI"
    WHATSAPP = "WHATSAPP"
    INSTAGRAM = "INSTAGRAM"


class ConversationStatus(_ValueEnum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class MessageSender(_ValueEnum):
    USER = "USER"
    AGENT = "AGENT"


class MessageStatus(_ValueEnum):
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"


class ProjectStatus(_ValueEnum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class TaskStatus(_ValueEnum):
    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"


class TransactionType(_ValueEnum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class ActivityType(_ValueEnum):
    """Activity feed event types (shared by CRM and Dev)."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNMENT = "ASSIGNMENT"
    COMMENT = "COMMENT"
    TIMELOG_STARTED = "TIMELOG_STARTED"
    TIMELOG_STOPPED = "TIMELOG_STOPPED"
    PAYOUT_CREATED = "PAYOUT_CREATED"
    STANDUP = "STANDUP"
    TICKET_SENT = "TICKET_SENT"
    TASK_COMPLETED = "TASK_COMPLETED"
    CLIENT_SYNCED = "CLIENT_SYNCED"


class NotificationType(str, Enum):
    """Types of in-app notifications."""
    LEAD_ASSIGNED = "lead_assigned"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_RECEIVED = "ticket_received"
    TICKET_RESOLVED = "ticket_resolved"
    TASK_ASSIGNED = "task_assigned"
    TASK_CREATED = "task_created"
    PAYOUT_CREATED = "payout_created"
    MEMBER_ADDED = "member_added"
    LEAD_CONVERTED = "lead_converted"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CUSTOMER_PLAN = Plan.FREE
DEFAULT_CUSTOMER_STATUS = CustomerStatus.TRIAL
DEFAULT_LEAD_STATUS = LeadStatus.NEW
DEFAULT_LEAD_SOURCE = LeadSource.MANUAL
DEFAULT_TICKET_STATUS = TicketStatus.OPEN
DEFAULT_PRIORITY = Priority.MEDIUM
DEFAULT_TASK_STATUS = TaskStatus.BACKLOG


# =============================================================================
# Role Sets
# =============================================================================

# Roles that can manage projects, assign work, create payouts
ROLES_CAN_MANAGE = {Role.ADMIN, Role.MANAGER}

# Roles that can manage org settings, API keys, integrations, billing
ROLES_CAN_ADMIN = {Role.ADMIN}

# Roles scoped to projects they are members of
ROLES_MEMBER_SCOPED = {Role.DEV}
