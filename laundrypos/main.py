# laundrypos/main.py
from fastapi import FastAPI

from laundrypos.config import configure_logging
from laundrypos.database import engine
from laundrypos.errors import LaundryPOSError, laundrypos_error_handler
from laundrypos.models import Base
from laundrypos.routes import admin as admin_router
from laundrypos.routes import licenses as license_router
from laundrypos.routes import orders as order_router
from laundrypos.routes import settings as settings_router
from laundrypos.routes import vouchers as voucher_router


def create_app() -> FastAPI:
    configure_logging()
    # create tables if not present
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Laundry POS Core")
    app.add_exception_handler(LaundryPOSError, laundrypos_error_handler)
    app.include_router(admin_router.router)
    app.include_router(license_router.router)
    app.include_router(order_router.router)
    app.include_router(voucher_router.router)
    app.include_router(settings_router.router)
    return app


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn
    uvicorn.run("laundrypos.main:app", host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
