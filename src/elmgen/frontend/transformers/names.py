"""
Name Resolution
Maps the names written in a file to module paths: import aliases are
expanded (``Decode.string`` is ``Json.Decode.string``) and unqualified type
names resolve to primitives, default-exposed types or local types
"""

from typing import Dict, Iterable, Tuple

from ...shared.types import Type, NamedType, PrimitiveType, PRIMITIVE_NAMES
from ...utils.config import DEFAULT_EXPOSED_TYPES, MODULE_SEPARATOR

ModulePath = Tuple[str, ...]


class NameResolver:
    def __init__(self, aliases: Dict[ModulePath, str] = None):
        # alias text -> module path
        self.alias_modules: Dict[str, ModulePath] = {alias: module for module, alias in (aliases or {}).items()}

    def module(self, parts: Tuple[str, ...]) -> ModulePath:
        return self.alias_modules.get(MODULE_SEPARATOR.join(parts), parts)

    def split(self, path: str) -> Tuple[ModulePath, str]:
        """``Json.Decode.string`` -> (("Json", "Decode"), "string"), aliases expanded."""
        parts = tuple(path.split(MODULE_SEPARATOR))
        module = parts[:-1]
        return (self.module(module) if module else ()), parts[-1]

    def type_named(self, path: str, args: Iterable[Type] = ()) -> Type:
        args = tuple(args)
        module, name = self.split(path)
        if module:
            return NamedType(module, name, args)
        if name in PRIMITIVE_NAMES and not args:
            return PrimitiveType(name)
        for default_module, names in DEFAULT_EXPOSED_TYPES.items():
            if name in names:
                return NamedType(default_module, name, args)
        return NamedType((), name, args)
