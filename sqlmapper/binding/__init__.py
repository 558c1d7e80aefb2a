from sqlmapper.binding.method import MapperMethod, MethodSignature, ParamNameResolver
from sqlmapper.binding.proxy import MapperProxy, MapperProxyFactory, MethodCache
from sqlmapper.binding.registry import MapperRegistry

__all__ = (
    "MapperMethod",
    "MapperProxy",
    "MapperProxyFactory",
    "MapperRegistry",
    "MethodCache",
    "MethodSignature",
    "ParamNameResolver",
)
