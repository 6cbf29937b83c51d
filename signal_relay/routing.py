import pkgutil
from importlib import import_module

from fastapi import APIRouter

from signal_relay.api import http as http_package
from signal_relay.logging import logger

_mounted_modules: set[str] = set()


def collect_subrouters() -> APIRouter:
    """
    Build the HTTP API from the modules of ``signal_relay.api.http``.

    Each module must expose a module-level ``router``. New endpoints are
    picked up by dropping a module into that package.
    """
    main_router = APIRouter()

    for module_info in pkgutil.iter_modules(http_package.__path__):
        module = import_module(f"{http_package.__name__}.{module_info.name}")
        main_router.include_router(module.router)

        # The app factory may run several times (tests, reload)
        if module_info.name not in _mounted_modules:
            logger.info(f'Register "{module_info.name}" api')
            _mounted_modules.add(module_info.name)

    return main_router
