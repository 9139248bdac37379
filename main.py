from fastapi import FastAPI
from shared.config.database import create_all

# IMPORTANT: import models so they register with Base
from services.product_service import models
from services.order_service import models as order_models
from services.payment_service import models as payment_models

from services.product_service.main import product_app
from services.order_service.main import order_app
from services.payment_service.main import payment_app

app = FastAPI(title="Sweet Shop Cluster")

@app.on_event("startup")
async def startup_event():
    # Create schemas and all tables
    await create_all()

@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "cluster", "status": "running"}

app.mount("/products", product_app)
app.mount("/orders", order_app)
app.mount("/payments", payment_app)
