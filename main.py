from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import Base, engine, settings
from api import classrooms, students, sessions
from core.concurrency import shutdown_executor

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables when the app boots
    Base.metadata.create_all(bind=engine)
    yield
    # Shutdown: release the roster store worker threads
    shutdown_executor(wait=False)


app = FastAPI(
    title="Classroom Randomizer API",
    description="Classroom rosters and the pick-a-random-student ritual",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(classrooms.router)
app.include_router(students.router)
app.include_router(sessions.router)


@app.get("/")
def root():
    return {"message": "Classroom Randomizer API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
