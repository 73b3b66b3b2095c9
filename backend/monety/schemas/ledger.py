from datetime import datetime

from pydantic import BaseModel, Field


class InvestmentRead(BaseModel):
    id: str
    product_id: int
    product_name: str
    amount: float
    daily_return: float
    total_days: int
    remaining_days: int
    start_date: datetime
    last_claim_date: datetime
    status: str

    class Config:
        from_attributes = True


class WithdrawalRead(BaseModel):
    id: str
    amount: float
    fee: float
    net_amount: float
    pix_key: str
    pix_type: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class DepositRead(BaseModel):
    id: str
    amount: float
    status: str
    pix_code: str
    created_at: datetime
    confirmed_at: datetime | None = None

    class Config:
        from_attributes = True


class ReferralRead(BaseModel):
    id: str
    referred_user_id: str
    display_id: str
    name: str
    email: str
    level: int
    earnings: float
    has_purchased: bool
    joined_at: datetime

    class Config:
        from_attributes = True


class UserRead(BaseModel):
    id: str
    display_id: str
    name: str
    email: str
    balance: float
    total_earnings: float
    today_earnings: float
    invite_code: str
    invited_by: str | None = None
    checkin_days: list[int]
    last_checkin: str | None = None
    roulette_spins: int
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerRecordRead(UserRead):
    referrals: list[ReferralRead]
    investments: list[InvestmentRead]
    withdrawals: list[WithdrawalRead]
    deposits: list[DepositRead]


class ProductRead(BaseModel):
    id: int
    name: str
    price: float
    daily_return: float
    duration: int
    tier: str

    class Config:
        from_attributes = True


class PurchaseRequest(BaseModel):
    product_id: int = Field(ge=1)


class PurchaseResultRead(BaseModel):
    investment: InvestmentRead
    balance: float


class CheckinStatusRead(BaseModel):
    current_day: int
    can_checkin: bool
    checked_in_today: bool
    checkin_days: list[int]
    last_checkin: str | None = None
    rewards: list[float]


class CheckinResultRead(BaseModel):
    day: int
    reward: float
    balance: float


class WheelSegmentRead(BaseModel):
    value: float
    weight: int


class SpinResultRead(BaseModel):
    prize: float
    balance: float
    roulette_spins: int


class DepositCreateRequest(BaseModel):
    amount: float = Field(gt=0, allow_inf_nan=False)


class WithdrawalCreateRequest(BaseModel):
    amount: float = Field(gt=0, allow_inf_nan=False)
    pix_key: str = Field(min_length=1, max_length=140)
    pix_type: str = Field(min_length=3, max_length=10)


class WithdrawalQuoteRead(BaseModel):
    amount: float
    fee: float
    net_amount: float
    window_open: bool
    window_message: str


class WithdrawalStatusUpdateRequest(BaseModel):
    status: str = Field(min_length=3, max_length=20)


class TeamLevelRead(BaseModel):
    level: int
    commission_percent: float
    count: int
    referrals: list[ReferralRead]


class TeamOverviewRead(BaseModel):
    invite_code: str
    invite_link: str
    total_referrals: int
    total_earnings: float
    purchased_referrals: int
    levels: list[TeamLevelRead]


class OperatorSummaryRead(BaseModel):
    total_users: int
    total_balance: float
    pending_withdrawals: int
    pending_deposits: int
