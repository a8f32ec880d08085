from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Optional

class EmployeeCreate(BaseModel):
    employee_number: str
    first_name: str
    last_name: str
    email: Optional[EmailStr] = None
    position: Optional[str] = None
    department: Optional[str] = None
    manager_id: Optional[int] = None
    active: bool = True

class EmployeeResponse(EmployeeCreate):
    id: int
    full_name: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
