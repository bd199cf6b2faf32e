from datetime import date
from pydantic import BaseModel

class DayOut(BaseModel):
    date: date
    label: str
    timezone: str
    is_available: bool

class SlotOut(BaseModel):
    time: str
    start: str
    end: str
    is_available: bool

class DaySlotsOut(BaseModel):
    date: date
    timezone: str
    slots: list[SlotOut]
