from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional

from hr_evidence.core.exceptions import ConflictError, ResourceNotFoundError
from hr_evidence.database import get_db
from hr_evidence.models.employee import Employee
from hr_evidence.schemas.employee import EmployeeCreate, EmployeeResponse

router = APIRouter(prefix="/employees", tags=["Employees"])

@router.post("/", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
def create_employee(data: EmployeeCreate, db: Session = Depends(get_db)):
    if db.query(Employee).filter(Employee.employee_number == data.employee_number).first():
        raise ConflictError(f"Employee number {data.employee_number} already exists")
    if data.manager_id is not None and db.get(Employee, data.manager_id) is None:
        raise ResourceNotFoundError("Manager", data.manager_id)

    employee = Employee(**data.model_dump())
    db.add(employee)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Employee email already in use", details={"email": data.email}) from None
    db.refresh(employee)
    return employee

@router.get("/", response_model=List[EmployeeResponse])
def list_employees(active: Optional[bool] = None, manager_id: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(Employee)
    if active is not None:
        query = query.filter(Employee.active == active)
    if manager_id:
        query = query.filter(Employee.manager_id == manager_id)
    return query.order_by(Employee.last_name, Employee.first_name).all()

@router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(employee_id: int, db: Session = Depends(get_db)):
    employee = db.get(Employee, employee_id)
    if not employee:
        raise ResourceNotFoundError("Employee", employee_id)
    return employee
