from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.auth import router as auth_router
from backend.app.api.v1.endpoints.users import router as users_router
from backend.app.api.v1.endpoints.hotels import router as hotels_router
from backend.app.api.v1.endpoints.items import router as items_router
from backend.app.api.v1.endpoints.vendors import router as vendors_router
from backend.app.api.v1.endpoints.recipes import router as recipes_router
from backend.app.api.v1.endpoints.procurement_orders import router as procurement_orders_router
from backend.app.api.v1.endpoints.store import router as store_router
from backend.app.api.v1.endpoints.stock_requests import router as stock_requests_router
from backend.app.api.v1.endpoints.consumption import router as consumption_router
from backend.app.api.v1.endpoints.sales import router as sales_router
from backend.app.api.v1.endpoints.payments import router as payments_router
from backend.app.api.v1.endpoints.reports import router as reports_router
from backend.app.api.v1.endpoints.md_dashboard import router as md_dashboard_router
from backend.app.api.v1.endpoints.leakage_alerts import router as leakage_alerts_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(users_router, tags=["users"])
router.include_router(hotels_router, tags=["hotels"])
router.include_router(items_router, tags=["items"])
router.include_router(vendors_router, tags=["vendors"])
router.include_router(recipes_router, tags=["recipes"])
router.include_router(procurement_orders_router, tags=["procurement_orders"])
router.include_router(store_router, tags=["store"])
router.include_router(stock_requests_router, tags=["stock_requests"])
router.include_router(consumption_router, tags=["consumption"])
router.include_router(sales_router, tags=["sales"])
router.include_router(payments_router, tags=["payments"])
router.include_router(reports_router, tags=["reports"])
router.include_router(md_dashboard_router, tags=["md_dashboard"])
router.include_router(leakage_alerts_router, tags=["leakage_alerts"])
