"""
API routers package
"""

from app.routers.admin import router as admin_router
from app.routers.auth import router as auth_router
from app.routers.categories import router as categories_router
from app.routers.contact_info import router as contact_info_router
from app.routers.content import router as content_router
from app.routers.inquiries import router as inquiries_router
from app.routers.orders import router as orders_router
from app.routers.products import router as products_router
from app.routers.users import router as users_router

ALL_ROUTERS = (
    auth_router,
    admin_router,
    users_router,
    products_router,
    categories_router,
    orders_router,
    inquiries_router,
    content_router,
    contact_info_router,
)
