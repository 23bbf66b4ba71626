from pydantic import BaseModel, Field, AliasChoices, field_serializer
from typing import Optional, List
from datetime import date, time, datetime

CALLBACK_KEYS = {"callback_date", "callback_time", "callbackDate", "callbackTime"}


class LeadFields(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    assigned_to: Optional[int] = None
    customer_id: Optional[int] = None

    # Callback, both spellings are accepted
    callback_date: Optional[str] = None
    callback_time: Optional[str] = None
    callbackDate: Optional[str] = None
    callbackTime: Optional[str] = None

    def callback_touched(self) -> bool:
        return bool(CALLBACK_KEYS & self.model_fields_set)

    def date_key_sent(self) -> bool:
        return bool({"callback_date", "callbackDate"} & self.model_fields_set)

    def time_key_sent(self) -> bool:
        return bool({"callback_time", "callbackTime"} & self.model_fields_set)

    def resolved_callback_date(self) -> Optional[str]:
        return self.callbackDate or self.callback_date or None

    def resolved_callback_time(self) -> Optional[str]:
        return self.callbackTime or self.callback_time or None


class LeadCreate(LeadFields):
    name: str


class LeadUpdate(LeadFields):
    name: Optional[str] = None


class LeadStatusUpdate(BaseModel):
    status: str


class BulkAssignRequest(BaseModel):
    lead_ids: List[int] = Field(validation_alias=AliasChoices("lead_ids", "leadIds"))
    assigned_to: int = Field(validation_alias=AliasChoices("assigned_to", "assignedTo"))


class LeadResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    callback_date: Optional[date] = None
    callback_time: Optional[time] = None
    assigned_to: Optional[int] = None
    created_by: Optional[int] = None
    client_id: Optional[int] = None
    customer_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("callback_date")
    def serialize_callback_date(self, value):
        return value.strftime("%Y-%m-%d") if value else None

    @field_serializer("callback_time")
    def serialize_callback_time(self, value):
        return value.strftime("%H:%M") if value else None

    class Config:
        from_attributes = True
