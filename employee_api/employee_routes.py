from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import get_db
from .models import Employee

router = APIRouter(prefix="/employees")


class EmployeeIn(BaseModel):
    first_name: str = Field(min_length=1, max_length=45)
    last_name: str = Field(min_length=1, max_length=45)
    email: str = Field(min_length=3, max_length=100)


class EmployeeOut(EmployeeIn):
    model_config = ConfigDict(from_attributes=True)

    id: int


def _get_or_404(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise HTTPException(status_code=404, detail=f"Employee id not found - {employee_id}")
    return employee


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")


@router.get("", response_model=list[EmployeeOut])
def list_employees(db: Session = Depends(get_db)):
    return db.query(Employee).order_by(Employee.last_name, Employee.first_name).all()


@router.get("/{employee_id}", response_model=EmployeeOut)
def get_employee(employee_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, employee_id)


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
def add_employee(payload: EmployeeIn, db: Session = Depends(get_db)):
    employee = Employee(**payload.model_dump())
    db.add(employee)
    _commit(db)
    db.refresh(employee)
    return employee


@router.put("/{employee_id}", response_model=EmployeeOut)
def update_employee(employee_id: int, payload: EmployeeIn, db: Session = Depends(get_db)):
    employee = _get_or_404(db, employee_id)
    for key, value in payload.model_dump().items():
        setattr(employee, key, value)
    _commit(db)
    db.refresh(employee)
    return employee


@router.delete("/{employee_id}")
def delete_employee(employee_id: int, db: Session = Depends(get_db)):
    employee = _get_or_404(db, employee_id)
    db.delete(employee)
    db.commit()
    return {"detail": f"Deleted employee id - {employee_id}"}
