"""
Position book: at most one open Position per mint.

Methods never await, so on a single event loop each call is atomic.
"""
from typing import Dict, Iterator, List, Optional

from sniper.errors import ValidationError
from sniper.models import Position


class PositionBook:

    def __init__(self):
        self._positions: Dict[str, Position] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, mint: str) -> bool:
        return mint in self._positions

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._positions.values()))

    def get(self, mint: str) -> Optional[Position]:
        return self._positions.get(mint)

    def all(self) -> List[Position]:
        return list(self._positions.values())

    def open(self, position: Position) -> Position:
        """Raises ValidationError if a position for the mint already exists."""
        if position.mint in self._positions:
            raise ValidationError(f"Position already exists for {position.mint}")
        self._positions[position.mint] = position
        return position

    def close(self, mint: str) -> Optional[Position]:
        return self._positions.pop(mint, None)

    def reduce(self, mint: str, tokens_sold: int, percent: float) -> Position:
        """
        Apply a partial sell. The held share shrinks by ``percent``; the
        original cost and the peak are left as they were.
        """
        position = self._positions.get(mint)
        if position is None:
            raise ValidationError(f"No position found for {mint}")
        if tokens_sold > position.entry_token_amount:
            raise ValidationError("Cannot sell more than the position holds")
        if not 0 < percent < 100:
            raise ValidationError("Partial sell percentage must be between 0 and 100")

        position.shrink(tokens_sold, percent)
        return position
