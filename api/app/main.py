import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.db.database import init_db
from app.routes import groups, messages, realtime
from app.services.blob_storage import BlobStorage
from app.services.realtime_hub import RealtimeHub

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    await init_db()
    yield
    await app.state.blob_storage.aclose()


app = FastAPI(
    title='Quedadas API',
    description='Group chat and group membership backend for the Quedadas sports-meetup app',
    version='0.1.0',
    lifespan=lifespan,
)

# Single-process realtime registry shared by HTTP routes and the WebSocket endpoint
app.state.hub = RealtimeHub()
app.state.blob_storage = BlobStorage(settings.aws_bucket_name, timeout=settings.upload_timeout_seconds)

# CORS for mobile app
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

# Routes
app.include_router(groups.router, prefix='/api/groups', tags=['groups'])
app.include_router(messages.router, prefix='/api/messages', tags=['messages'])
app.include_router(realtime.router, tags=['realtime'])


@app.get('/health')
async def health_check():
    """Health check endpoint."""
    return {
        'status': 'ok',
        'service': 'quedadas-api',
        'connections': len(app.state.hub.connections),
    }
