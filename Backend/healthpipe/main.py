from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from healthpipe.config import CORS_ORIGINS
from healthpipe.db.engine import engine
from healthpipe.db.schema import create_tables
from healthpipe.routes import records as records_routes


app = FastAPI(title="healthpipe")
app.include_router(records_routes.router)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_event():
    create_tables(engine)
