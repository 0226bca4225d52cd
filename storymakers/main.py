from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .backend import BackendAccessor
from .core import configure_logging, init_metrics
from .errors import AuthorizationError
from .routes import router
from .routes.deps import ACCESS_COOKIE, REFRESH_COOKIE

# setup structured logging
logger = configure_logging('storymakers')


def create_app(settings=None) -> FastAPI:
    accessor = BackendAccessor(settings)
    app = FastAPI(title='StoryMakers API', version=__version__)
    app.state.backend_accessor = accessor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.include_router(router)

    if accessor.settings.storage_backend == 'local':
        app.mount(
            accessor.settings.media_url,
            StaticFiles(directory=accessor.settings.media_root, check_dir=False),
            name='media',
        )

    @app.get('/healthz')
    async def healthz():
        return {'status': 'ok', 'backend': accessor.get() is not None}

    @app.exception_handler(AuthorizationError)
    async def authorization_failed(request: Request, exc: AuthorizationError):
        response = JSONResponse({'detail': str(exc)}, status_code=403)
        response.delete_cookie(ACCESS_COOKIE)
        response.delete_cookie(REFRESH_COOKIE)
        return response

    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
        response = await call_next(request)
        logger.info({'msg': 'request_end', 'status': response.status_code})
        return response

    @app.on_event('startup')
    async def startup():
        # Best-effort init, don't block app from starting if metrics fail
        try:
            init_metrics(accessor.settings.metrics_port)
        except Exception as e:
            logger.warning({'msg': 'metrics_init_failed', 'error': str(e)})

    @app.on_event('shutdown')
    async def shutdown():
        await accessor.close()

    return app


app = create_app()
