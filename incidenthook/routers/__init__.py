# incidenthook/routers/__init__.py
"""
Routers de incidenthook.

Soporta importaciones como:  from incidenthook.routers import detect
sin inicializar nada pesado en tiempo de import.
"""

from importlib import import_module

__all__ = [
    "detect",
    "evidence",
    "incidents",
]

def __getattr__(name):
    # Carga perezosa de submódulos: incidenthook.routers.<name>
    if name in __all__:
        return import_module(f"{__name__}.{name}")
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
