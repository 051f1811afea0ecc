"""Pydantic models for configuration, domain records, events and API payloads."""

# Plan and configuration models
from .plan import (
    BillingCycle,
    SubscriptionPlan,
    PubSubConfig,
    SchedulerConfig,
    LifecycleConfig,
    ServiceConfig,
)

# Subscription models
from .subscription import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    InvalidTransitionError,
    SubscriptionRecord,
    SubscriptionStatus,
    can_transition,
)

# Event models
from .events import (
    EXPIRY_ALERT,
    EXPIRY_REMINDER,
    SubscriptionPushEvent,
)

# Points wallet models
from .points import (
    AwardPointsRequest,
    BalanceResponse,
    PointsTransaction,
    PointsValidationResponse,
    PointsWallet,
    RedeemPointsRequest,
    TransactionType,
)

# Sweep outcome
from .sweep import ItemFailure, SweepResult

# API models
from .api_request import (
    AdvanceTimeRequest,
    CreateSubscriptionRequest,
    SetTimeRequest,
    StatsResponse,
    SubscriptionActionResponse,
    SubscriptionResponse,
    TimeResponse,
)

__all__ = [
    # Plans and configuration
    "BillingCycle",
    "SubscriptionPlan",
    "PubSubConfig",
    "SchedulerConfig",
    "LifecycleConfig",
    "ServiceConfig",
    # Subscription
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "InvalidTransitionError",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "can_transition",
    # Events
    "EXPIRY_ALERT",
    "EXPIRY_REMINDER",
    "SubscriptionPushEvent",
    # Points
    "AwardPointsRequest",
    "BalanceResponse",
    "PointsTransaction",
    "PointsValidationResponse",
    "PointsWallet",
    "RedeemPointsRequest",
    "TransactionType",
    # Sweeps
    "ItemFailure",
    "SweepResult",
    # API
    "AdvanceTimeRequest",
    "CreateSubscriptionRequest",
    "SetTimeRequest",
    "StatsResponse",
    "SubscriptionActionResponse",
    "SubscriptionResponse",
    "TimeResponse",
]
