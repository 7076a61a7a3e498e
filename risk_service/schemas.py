"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from risk_service.domain import TransactionType
from risk_service.scoring import RiskCategory


class TransactionCreate(BaseModel):
    """Request body for POST /api/users/{id}/transactions."""
    amount: float = Field(..., ge=0, allow_inf_nan=False, description="Non-negative amount")
    type: TransactionType = Field(..., description="debit or credit")
    category: str = Field(..., min_length=1, description="Spending or income category")


class CustomerSchema(BaseModel):
    """A customer profile."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    monthly_income: float
    credit_limit: float
    email: Optional[str] = None
    phone: Optional[str] = None
    occupation: Optional[str] = None
    employer: Optional[str] = None
    created_at: Optional[datetime] = None


class CustomerWithRisk(CustomerSchema):
    """Customer listing entry with the current score."""
    risk_score: Optional[float] = Field(None, ge=0, le=1)
    risk_category: Optional[RiskCategory] = None


class TransactionSchema(BaseModel):
    """A recorded transaction."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str = Field(..., validation_alias=AliasChoices("user_id", "customer_id"))
    amount: float
    type: TransactionType
    category: str
    timestamp: datetime


class RiskFactorSchema(BaseModel):
    """A single contribution to the score."""
    model_config = ConfigDict(from_attributes=True)

    factor: str = Field(..., validation_alias=AliasChoices("factor", "name"))
    impact: float
    description: str


class RiskAssessmentSchema(BaseModel):
    """Response body for GET /api/users/{id}/risk."""
    model_config = ConfigDict(from_attributes=True)

    final_score: float = Field(..., ge=0, le=1)
    risk_category: RiskCategory
    factors: list[RiskFactorSchema] = Field(..., max_length=5)
    default_probability: float = Field(..., ge=0, le=1)
    anomaly_score: float = Field(..., ge=0, le=1)
    stress_score: float = Field(..., ge=0, le=1)
    generated_at: datetime


class TransactionCreatedResponse(BaseModel):
    """Response body for POST /api/users/{id}/transactions."""
    transaction: TransactionSchema
    risk: RiskAssessmentSchema


class RiskDistribution(BaseModel):
    """Customer counts per risk category."""
    high: int
    medium: int
    low: int


class StatsResponse(BaseModel):
    """Response body for GET /api/stats."""
    total_users: int
    total_transactions: int
    risk_distribution: RiskDistribution
    omitted: list[str] = Field(default_factory=list, description="Customers that could not be assessed")
