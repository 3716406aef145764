import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.dependencies import cleanup_dependencies, deps, init_dependencies
from api.error_handlers import register_exception_handlers
from api.routes import health, rates
from config.logging_config import setup_logging
from config.settings import get_settings

logger = logging.getLogger(__name__)


settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
	setup_logging(
		level=settings.LOG_LEVEL,
		log_directory=settings.LOG_DIRECTORY,
		log_to_file=settings.LOG_TO_FILE,
	)
	logger.info('Starting Currency Rate Graph API...')

	init_dependencies(settings)
	if deps.db is None:
		raise RuntimeError('Database not initialized')
	await deps.db.create_tables()
	logger.info('Database tables created')

	logger.info('Application ready')

	yield

	logger.info('Shutting down...')
	await cleanup_dependencies()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(rates.router)
app.include_router(health.router)
register_exception_handlers(app)


if __name__ == '__main__':
	import uvicorn

	logger.info(f'Starting server on {settings.HOST}:{settings.PORT}')

	uvicorn.run(
		'api.main:app',
		host=settings.HOST,
		port=settings.PORT,
		reload=settings.DEBUG,
		log_level=settings.LOG_LEVEL.lower(),
	)
