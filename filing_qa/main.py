import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from filing_qa.routes import auth, documents, questions, analyze
from filing_qa.db.base import Base
from filing_qa.db.sessions import engine
from filing_qa.core.config import settings

# Import all models to ensure they're registered with Base
import filing_qa.models


logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Upload SEC filings and ask questions about them with cited answers"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth.router)
app.include_router(documents.router)
app.include_router(questions.router)
app.include_router(analyze.router)


@app.on_event("startup")
def startup_event():
    # Create tables
    Base.metadata.create_all(bind=engine)
    logger.info("%s v%s starting (model=%s)", settings.APP_NAME, settings.APP_VERSION, settings.OPENAI_MODEL)


@app.get("/health")
def health():
    return {"status": "ok"}
