import os
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from dotenv import load_dotenv

# Load Environment Variables
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Import Routers
from app.api.v1.endpoints import admin, auth, events, notifications, payments, projects, review
from app.core.exception_handlers import register_exception_handlers

app = FastAPI(
    title="EditoHub Platform",
    description="Video review, payments and provisioning backend"
)

# --- 1. SECURITY & MIDDLEWARE ---

# CORS: comma-separated origins, "*" by default for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

app.add_middleware(SecurityHeadersMiddleware)

register_exception_handlers(app)

# --- 2. API ROUTES ---
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(admin.router, prefix="/api/v1", tags=["Provisioning"])
app.include_router(payments.router, prefix="/api/v1", tags=["Payments"])
app.include_router(review.router, prefix="/api/v1/review", tags=["Review"])
app.include_router(projects.router, prefix="/api/v1/projects", tags=["Projects"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["Notifications"])
app.include_router(events.router, prefix="/api/v1", tags=["Events"])

# Serve Frontend Config Dynamically
@app.get("/api/v1/config")
async def get_frontend_config():
    """Returns public Firebase/Razorpay config from environment variables."""
    return {
        "apiKey": os.getenv("FIREBASE_API_KEY"),
        "authDomain": os.getenv("FIREBASE_AUTH_DOMAIN"),
        "projectId": os.getenv("GCP_PROJECT_ID"),
        "storageBucket": os.getenv("GCP_STORAGE_BUCKET"),
        "razorpayKeyId": os.getenv("RAZORPAY_KEY_ID"),
    }

@app.get("/health")
async def health():
    return {"status": "online"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
