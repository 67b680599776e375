from typing import Any

from xmlwire.bootstrap.deps import get_router


router = get_router()


@router.method("system.listMethods")
async def list_methods() -> list[str]:
    return sorted(router.methods())


@router.method("echo")
async def echo(*params: Any) -> Any:
    if len(params) == 1:
        return params[0]
    return list(params)
