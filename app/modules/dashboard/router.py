"""
Endpoints del Dashboard
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import CompanyContext
from app.modules.dashboard.schemas import DashboardResponse
from app.modules.dashboard.service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/", response_model=DashboardResponse)
def get_dashboard(auth_context: CompanyContext, db: Session = Depends(get_db)):
    """
    Métricas de ingresos de la empresa actual.

    - **stats**: contadores de facturas y clientes, ingresos cobrados, facturas pendientes
    - **monthly_revenue**: ingresos cobrados por mes, año actual frente al anterior
    - **top_customers** / **top_items**: los 5 primeros por ingresos cobrados
    - **activity**: facturas creadas, pagadas y enviadas en los últimos 30 días
    """
    return DashboardService(db).get_dashboard(auth_context.company_id)
