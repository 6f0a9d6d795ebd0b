"""
callvm.state.code — code provider: contract address → bytecode.

`CodeRegistry.resolve_code` is what the engine and the nested-call manager use
to find the bytecode a new context runs. Bytes are immutable, so the same
object is handed to every context executing that contract.

`install` is a bootstrap hook (genesis fixtures, tests); it is not a
deployment pipeline and performs no validation beyond the size limit.
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional

from ..config import get_config
from ..errors import NotFound
from ..types.hexutil import AddressLike, HexLike, hex_to_bytes, to_address


class CodeRegistry:
    def __init__(
        self,
        codes: Optional[Mapping[AddressLike, bytes]] = None,
        *,
        max_code_bytes: Optional[int] = None,
    ) -> None:
        self.max_code_bytes = (
            get_config().limits.max_code_bytes if max_code_bytes is None else int(max_code_bytes)
        )
        self._codes: Dict[bytes, bytes] = {}
        for addr, code in (codes or {}).items():
            self.install(addr, code)

    def install(self, address: AddressLike, code: HexLike) -> bytes:
        """Install `code` at `address` (replacing any previous code)."""
        addr = to_address(address)
        code_b = hex_to_bytes(code)
        if len(code_b) > self.max_code_bytes:
            raise ValueError(
                f"code size {len(code_b)} exceeds limit {self.max_code_bytes}"
            )
        self._codes[addr] = code_b
        return addr

    def has_code(self, address: AddressLike) -> bool:
        return to_address(address) in self._codes

    def resolve_code(self, address: AddressLike) -> bytes:
        """Return the code at `address` or raise NotFound."""
        addr = to_address(address)
        try:
            return self._codes[addr]
        except KeyError:
            raise NotFound(f"no code at 0x{addr.hex()}", address=addr) from None

    def __iter__(self) -> Iterator[bytes]:
        return iter(sorted(self._codes))

    def __len__(self) -> int:
        return len(self._codes)


__all__ = ["CodeRegistry"]
