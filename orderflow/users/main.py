import uvicorn
from fastapi import FastAPI

from orderflow.config.factory import get_settings
from orderflow.shared.errors import register_error_handlers
from orderflow.users.routes import router

app = FastAPI(title="User Service", version="1.0.0")
register_error_handlers(app)
app.include_router(router)


def run():
    settings = get_settings()
    uvicorn.run("orderflow.users.main:app", host=settings.app.host, port=settings.app.users_port)


if __name__ == "__main__":
    run()
