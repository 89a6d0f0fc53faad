from prometheus_fastapi_instrumentator import Instrumentator

from charities import create_app
from charities.core.config import settings
from charities.core.logging import setup_logging

setup_logging()
app = create_app(settings)
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app)
