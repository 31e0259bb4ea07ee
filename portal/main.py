import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.routers.auth import router as auth_router
from portal.routers.shipments import router as shipments_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Shipment Portal")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(shipments_router)
app.include_router(auth_router)

@app.get("/")
async def root():
    return {"status": "ONLINE", "engine": "Shipment Portal V1"}
