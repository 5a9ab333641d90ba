"""
Bit-packed cell identifiers, DD4hep BitFieldCoder style.

A descriptor such as "system:5,superlayer:5,layer:4,nphi:11,stereosign:-2"
lists fields from the least significant bit upwards; "name:width" packs the
field right after the previous one, "name:offset:width" places it
explicitly, a negative width marks a signed field.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple

from dchdigi.digi.errors import DecodingError, StartupError


@dataclass(frozen=True, slots=True)
class BitFieldElement:
    name: str
    offset: int
    width: int
    is_signed: bool

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.offset

    @property
    def min_val(self) -> int:
        return -(1 << (self.width - 1)) if self.is_signed else 0

    @property
    def max_val(self) -> int:
        return (1 << (self.width - 1)) - 1 if self.is_signed else (1 << self.width) - 1

    def value(self, cell_id: int) -> int:
        val = (cell_id & self.mask) >> self.offset
        if self.is_signed and (val & (1 << (self.width - 1))):
            val -= (1 << self.width)
        return val


class BitFieldCoder:
    def __init__(self, descriptor: str):
        self.descriptor = descriptor
        fields: list[BitFieldElement] = []
        offset = 0
        for field_desc in descriptor.split(","):
            parts = field_desc.strip().split(":")
            try:
                if len(parts) == 2:
                    name, width = parts[0], int(parts[1])
                    this_offset = offset
                elif len(parts) == 3:
                    name, this_offset, width = parts[0], int(parts[1]), int(parts[2])
                else:
                    raise ValueError
            except ValueError:
                raise StartupError(f"Invalid field descriptor {field_desc!r} in {descriptor!r}") from None
            if not name or width == 0 or this_offset < 0:
                raise StartupError(f"Invalid field descriptor {field_desc!r} in {descriptor!r}")
            offset = this_offset + abs(width)
            fields.append(BitFieldElement(name, this_offset, abs(width), width < 0))

        names = [f.name for f in fields]
        if len(set(names)) != len(names):
            raise StartupError(f"Duplicate field names in {descriptor!r}")
        used = 0
        for f in fields:
            if used & f.mask:
                raise StartupError(f"Field {f.name!r} overlaps another field in {descriptor!r}")
            used |= f.mask

        self.fields: Tuple[BitFieldElement, ...] = tuple(fields)
        self._by_name: Dict[str, BitFieldElement] = {f.name: f for f in fields}
        self.nbits = max(f.offset + f.width for f in fields)

    def field(self, name: str) -> BitFieldElement:
        try:
            return self._by_name[name]
        except KeyError:
            raise StartupError(f"Unknown field {name!r} in {self.descriptor!r}") from None

    def _check(self, cell_id: int) -> int:
        cell_id = int(cell_id)
        if cell_id < 0 or cell_id >> self.nbits:
            raise DecodingError(
                f"cellID {cell_id:#x} does not fit the {self.nbits}-bit layout {self.descriptor!r}",
                cell_id=cell_id,
            )
        return cell_id

    def get(self, cell_id: int, name: str) -> int:
        return self.field(name).value(self._check(cell_id))

    def decode(self, cell_id: int) -> Dict[str, int]:
        cell_id = self._check(cell_id)
        return {f.name: f.value(cell_id) for f in self.fields}

    def encode(self, **values: int) -> int:
        """Pack field values into a cell ID; missing fields are zero."""
        cell_id = 0
        for name, v in values.items():
            f = self.field(name)
            v = int(v)
            if not (f.min_val <= v <= f.max_val):
                raise ValueError(f"{name}={v} outside [{f.min_val}, {f.max_val}]")
            cell_id |= (v << f.offset) & f.mask
        return cell_id


class DCHCellIDDecoder:
    """
    Maps a drift chamber cell ID to (canonical layer index, nphi).

    layer index = layer + nlayers_per_superlayer * superlayer + 1  (1-based)
    """

    REQUIRED = ("superlayer", "layer", "nphi")

    def __init__(self, coder: BitFieldCoder, nlayers_per_superlayer: int):
        for name in self.REQUIRED:
            coder.field(name)
        if nlayers_per_superlayer <= 0:
            raise StartupError("nlayers_per_superlayer must be positive")
        self.coder = coder
        self.nlayers_per_superlayer = nlayers_per_superlayer

    @classmethod
    def from_descriptor(cls, descriptor: str, nlayers_per_superlayer: int) -> "DCHCellIDDecoder":
        return cls(BitFieldCoder(descriptor), nlayers_per_superlayer)

    def layer_index(self, cell_id: int) -> int:
        fields = self.coder.decode(cell_id)
        return fields["layer"] + self.nlayers_per_superlayer * fields["superlayer"] + 1

    def nphi(self, cell_id: int) -> int:
        return self.coder.get(cell_id, "nphi")

    def layer_and_nphi(self, cell_id: int) -> tuple[int, int]:
        fields = self.coder.decode(cell_id)
        ilayer = fields["layer"] + self.nlayers_per_superlayer * fields["superlayer"] + 1
        return ilayer, fields["nphi"]

    def encode(self, ilayer: int, nphi: int, **extra: int) -> int:
        """Inverse of layer_and_nphi, used by the toy generators."""
        superlayer, layer = divmod(ilayer - 1, self.nlayers_per_superlayer)
        return self.coder.encode(superlayer=superlayer, layer=layer, nphi=nphi, **extra)
