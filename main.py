from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from contextlib import asynccontextmanager
import logging

from app.routers import auth, catalogo, clientes, pedidos, precios, repartos, usuarios
from app.utils.error_handlers import register_exception_handlers
from config.settings import settings
from database.connection import Base, engine
from app import models  # noqa: F401  registra las tablas en Base.metadata

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # En desarrollo las tablas se crean solas; en producción usar alembic
    if settings.DEBUG:
        Base.metadata.create_all(bind=engine)
    logger.info("🚀 Lancu API iniciada (debug=%s)", settings.DEBUG)
    yield
    engine.dispose()


app = FastAPI(
    title="Lancu API",
    description="API de gestión de pedidos, clientes, precios y repartos",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting (el limiter vive en el router de auth, donde se usa)
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_exception_handlers(app)

# Configurar CORS más específico para producción
if settings.DEBUG:
    # En desarrollo, permitir todos los orígenes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    # En producción, solo los orígenes configurados
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

# Incluir routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(clientes.router, prefix="/api/clientes", tags=["clientes"])
app.include_router(catalogo.categorias_router, prefix="/api/categorias", tags=["categorias"])
app.include_router(catalogo.productos_router, prefix="/api/productos", tags=["productos"])
app.include_router(precios.router, prefix="/api/precios", tags=["precios"])
app.include_router(repartos.router, prefix="/api/repartos", tags=["repartos"])
app.include_router(pedidos.router, prefix="/api/pedidos", tags=["pedidos"])
app.include_router(usuarios.router, prefix="/api/usuarios", tags=["usuarios"])


@app.get("/")
async def root():
    return {
        "message": "Lancu API funcionando!",
        "docs": "/docs",
        "status": "activo"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "lancu-api"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="debug" if settings.DEBUG else "info")
