"""Points wallet and transaction models.

Users earn points when a subscription is activated and spend them on course
material. Each user has at most one wallet; every balance change is recorded
as a transaction.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Direction of a points transaction."""

    EARN = "EARN"
    REDEEM = "REDEEM"


class PointsWallet(BaseModel):
    """A user's points balance and lifetime totals."""

    id: str = Field(..., description="Wallet identifier")
    user_id: str = Field(..., description="Owning user id")
    total_points: int = Field(default=0, ge=0, description="Spendable balance")
    lifetime_earned: int = Field(default=0, ge=0, description="Points ever earned")
    lifetime_spent: int = Field(default=0, ge=0, description="Points ever redeemed")
    created_at: datetime = Field(..., description="When the wallet was opened")
    updated_at: Optional[datetime] = Field(None, description="Last balance change")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "5b0c3d2e-9f1a-4c8e-8a57-0f4e5d7c1b2a",
                "user_id": "user-123",
                "total_points": 150,
                "lifetime_earned": 200,
                "lifetime_spent": 50,
                "created_at": "2024-01-01T10:00:00Z",
            }
        }


class PointsTransaction(BaseModel):
    """One earn or redeem entry in a wallet's history."""

    id: str
    wallet_id: str
    user_id: str
    transaction_type: TransactionType
    points: int = Field(..., gt=0)
    description: str
    reference_type: Optional[str] = Field(None, description="What the points were for, e.g. SUBSCRIPTION")
    reference_id: Optional[str] = Field(None, description="Id of the referenced object")
    created_at: datetime


class PointsValidationResponse(BaseModel):
    """Whether a user can afford a resource."""

    has_enough_points: bool
    current_balance: int
    required_points: int
    message: str

    @classmethod
    def for_balance(cls, current_balance: int, required_points: int) -> "PointsValidationResponse":
        if current_balance >= required_points:
            message = "User has enough points"
        else:
            message = f"Insufficient points. You need {required_points - current_balance} more points."
        return cls(
            has_enough_points=current_balance >= required_points,
            current_balance=current_balance,
            required_points=required_points,
            message=message,
        )


class RedeemPointsRequest(BaseModel):
    """Request to spend points from a wallet."""

    points: int = Field(..., ge=1, description="Points to redeem")
    description: str = Field(..., min_length=1, description="What the points are spent on")
    reference_type: Optional[str] = Field(None, description="Resource type, e.g. COURSE_MODULE or QUIZ")
    reference_id: Optional[str] = Field(None, description="Resource id")

    class Config:
        json_schema_extra = {
            "example": {
                "points": 50,
                "description": "Unlock module 3",
                "reference_type": "COURSE_MODULE",
                "reference_id": "module-3",
            }
        }


class AwardPointsRequest(BaseModel):
    """Request to credit points to a wallet outside of a subscription."""

    points: int = Field(..., ge=1, description="Points to award")
    description: str = Field(..., min_length=1, description="Reason for the award")
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None


class BalanceResponse(BaseModel):
    user_id: str
    balance: int
