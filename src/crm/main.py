from fastapi import FastAPI

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from .api import jobs_router
from .services.startup import initialize_app, shutdown_app

app = FastAPI(title="Pest Control CRM - Pipeline Jobs")

app.include_router(jobs_router)


@app.on_event("startup")
def startup():
    initialize_app()


@app.on_event("shutdown")
def shutdown():
    shutdown_app()
