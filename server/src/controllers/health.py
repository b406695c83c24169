from litestar import Controller, get
from pydantic import BaseModel


class HealthStatus(BaseModel):
    status: str


class HealthController(Controller):
    path = "/health"

    @get(path="/")
    async def get_health_status(self) -> HealthStatus:
        """Reports that the import API is up."""
        return HealthStatus(status="ok")
