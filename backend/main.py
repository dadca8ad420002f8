# backend/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from config import settings
from database import init_db

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

# Router imports
from routes.cart import router as cart_router
from routes.wishlist import router as wishlist_router
from routes.shop import router as shop_router
from routes.logs import router as logs_router
from routes.diagnostics import router as diagnostics_router

# Initialization
init_db()

app = FastAPI(title="Storefront Sync API", version="1.0.0")

# CORS Configuration
# Frontend URL comes from the environment, local dev servers are always allowed
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173"
]

if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Router registration
app.include_router(cart_router)
app.include_router(wishlist_router)
app.include_router(shop_router)
app.include_router(logs_router)
app.include_router(diagnostics_router)

@app.get("/")
def read_root():
    return {"message": "Storefront Sync API is running"}
