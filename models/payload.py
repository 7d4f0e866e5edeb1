# models/payload.py
from pydantic import BaseModel, Field
from typing import Optional


class AirtimeRequest(BaseModel):
    amount: float = Field(..., gt=0, description="Airtime value in local currency")
    phone: Optional[str] = Field(None, description="Number to load; sender's own number when missing")
    network: Optional[str] = Field(None, description="MTN, Airtel, ...")


class TransferRequest(BaseModel):
    amount: float = Field(..., gt=0)
    recipient: Optional[str] = Field(None, description="Name or phone number of the recipient")


class BillPaymentRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    account: Optional[str] = Field(None, description="Meter, customer or smartcard number")


class TopUpRequest(BaseModel):
    amount: float = Field(..., gt=0)
