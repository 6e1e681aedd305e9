from fastapi import FastAPI

from marketplace.core.errors import register_exception_handlers
from marketplace.core.logging import init_logging
from marketplace.database import create_db_and_tables
from marketplace.routers import users
from marketplace.routers import auth
from marketplace.routers import services
from marketplace.routers import quotes
from marketplace.routers import payments
from marketplace.routers import appointments
from marketplace.routers import business_hours, time_blocks
from marketplace.routers import wallet
from marketplace.routers import moderation
from marketplace.routers import jobs

init_logging()

app = FastAPI(title="Marketplace de serviços")
register_exception_handlers(app)

app.include_router(users.router)
app.include_router(auth.router)
app.include_router(services.router)
app.include_router(quotes.router)
app.include_router(payments.router)
app.include_router(appointments.router)
app.include_router(business_hours.router)
app.include_router(time_blocks.router)
app.include_router(wallet.router)
app.include_router(moderation.router)
app.include_router(jobs.router)


@app.on_event("startup")
def on_startup():
    create_db_and_tables()

@app.get("/")
def root():
    return {"message": "API marketplace funcionando 🚀"}
