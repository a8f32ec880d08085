from fastapi import APIRouter
from hr_evidence.routers import employees, evidence, periods, evaluations

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(employees.router, tags=["Employees"])
api_router.include_router(evidence.router, tags=["Evidence Journal"])
api_router.include_router(periods.router, tags=["Evaluation Periods"])
api_router.include_router(evaluations.router, tags=["Evaluations"])
