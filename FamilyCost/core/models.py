"""Ledger record types and their JSON wire format.

Records are serialized with camelCase keys so the blob stored in the remote
key-value store can be read by every client sharing the bucket.
"""
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_INT_PREFIX = re.compile(r'\s*([+-]?\d+)')


def new_id() -> str:
    """Return a random UUID4 string."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Return the current epoch time in milliseconds."""
    return int(time.time() * 1000)


def to_amount(value: Any) -> int:
    """Coerce a user supplied amount to an integer.

    The leading integer part of the value is used; anything without one reads as 0.

    Args:
        value: An int, float or string.

    Returns:
        int: The parsed amount.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else 0
    m = _INT_PREFIX.match(str(value))
    return int(m.group(1)) if m else 0


@dataclass
class UnitEntry:
    income: int = 0
    cost: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {'income': self.income, 'cost': self.cost}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'UnitEntry':
        data = data or {}
        return cls(income=to_amount(data.get('income')), cost=to_amount(data.get('cost')))


@dataclass
class BazarItem:
    name: str
    cost: int
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'cost': self.cost}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BazarItem':
        return cls(
            name=str(data.get('name', '')),
            cost=to_amount(data.get('cost')),
            id=str(data.get('id') or new_id()),
        )


@dataclass
class DailyEntry:
    """One day's log.

    Attributes:
        id (str): Unique id of this version of the entry.
        date (str): 'YYYY-MM-DD'.
        units (dict[str, UnitEntry]): Income and cost per unit name.
        bazar_items (list[BazarItem]): Grocery line items.
        bazar_costs (int): Sum of the bazar item costs.
        total_income (int): Sum of the unit incomes.
        total_vehicle_cost (int): Sum of the unit costs.
        available_balance (int): Income less vehicle and bazar costs.
        updated_at (int): Epoch milliseconds of the last write.
        parent_id (str | None): Id of the first version of an edited entry.
        is_history (bool): True once the entry has been superseded by an edit.
    """
    id: str
    date: str
    units: Dict[str, UnitEntry] = field(default_factory=dict)
    bazar_items: List[BazarItem] = field(default_factory=list)
    bazar_costs: int = 0
    total_income: int = 0
    total_vehicle_cost: int = 0
    available_balance: int = 0
    updated_at: int = 0
    parent_id: Optional[str] = None
    is_history: bool = False

    @property
    def root_id(self) -> str:
        """Id shared by every version of this entry."""
        return self.parent_id or self.id

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'date': self.date,
            'units': {k: v.to_dict() for k, v in self.units.items()},
            'bazarItems': [v.to_dict() for v in self.bazar_items],
            'bazarCosts': self.bazar_costs,
            'totalIncome': self.total_income,
            'totalVehicleCost': self.total_vehicle_cost,
            'availableBalance': self.available_balance,
            'updatedAt': self.updated_at,
        }
        if self.parent_id:
            data['parentId'] = self.parent_id
        if self.is_history:
            data['isHistory'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DailyEntry':
        """Build an entry from its wire format.

        Stored totals are kept as they are; they are only computed by :func:`make_entry`.

        Raises:
            ValueError: If the data is not a mapping or has no id or date.
        """
        if not isinstance(data, dict):
            raise ValueError(f'Expected an entry object, got {type(data).__name__}.')
        if not data.get('id') or not data.get('date'):
            raise ValueError('Entry is missing "id" or "date".')

        units = data.get('units')
        if not isinstance(units, dict):
            units = {}
        items = data.get('bazarItems')
        if not isinstance(items, list):
            items = []
        return cls(
            id=str(data['id']),
            date=str(data['date']),
            units={str(k): UnitEntry.from_dict(v if isinstance(v, dict) else None) for k, v in units.items()},
            bazar_items=[BazarItem.from_dict(v) for v in items if isinstance(v, dict)],
            bazar_costs=to_amount(data.get('bazarCosts')),
            total_income=to_amount(data.get('totalIncome')),
            total_vehicle_cost=to_amount(data.get('totalVehicleCost')),
            available_balance=to_amount(data.get('availableBalance')),
            updated_at=to_amount(data.get('updatedAt')),
            parent_id=data.get('parentId') or None,
            is_history=bool(data.get('isHistory', False)),
        )


@dataclass
class AuthUser:
    email: str
    id: str = field(default_factory=new_id)
    sync_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'email': self.email, 'id': self.id}
        if self.sync_token:
            data['syncToken'] = self.sync_token
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthUser':
        return cls(
            email=str(data['email']),
            id=str(data.get('id') or new_id()),
            sync_token=data.get('syncToken') or None,
        )


@dataclass
class RemotePayload:
    """The whole ledger as stored under one key of the remote store."""
    entries: List[DailyEntry] = field(default_factory=list)
    updated_at: int = 0

    @property
    def is_empty(self) -> bool:
        return self.updated_at == 0 and not self.entries

    def to_dict(self) -> Dict[str, Any]:
        return {'entries': [e.to_dict() for e in self.entries], 'updatedAt': self.updated_at}

    @classmethod
    def from_dict(cls, data: Any) -> 'RemotePayload':
        """Parse a payload document.

        Raises:
            ValueError: If the document is not an object with an ``entries`` list,
                or an entry cannot be read.
        """
        if not isinstance(data, dict) or not isinstance(data.get('entries'), list):
            raise ValueError('Payload must be an object with an "entries" list.')
        return cls(
            entries=[DailyEntry.from_dict(v) for v in data['entries']],
            updated_at=to_amount(data.get('updatedAt')),
        )


def entries_to_list(entries: List[DailyEntry]) -> List[Dict[str, Any]]:
    return [e.to_dict() for e in entries]


def entries_from_list(data: List[Dict[str, Any]]) -> List[DailyEntry]:
    return [DailyEntry.from_dict(v) for v in data]


def make_entry(
        date: str,
        units: Dict[str, Any],
        bazar_items: List[Any],
        entry_id: Optional[str] = None,
        unit_names: Optional[List[str]] = None,
) -> DailyEntry:
    """Create a new entry and compute its derived totals.

    Args:
        date (str): 'YYYY-MM-DD'.
        units (dict): Unit name to a :class:`UnitEntry` or an ``{income, cost}`` mapping.
        bazar_items (list): :class:`BazarItem` objects or ``{name, cost}`` mappings.
        entry_id (str, optional): Id to use. A new one is generated when omitted.
        unit_names (list[str], optional): Units that must be present. Missing ones
            are filled with zero income and cost.

    Returns:
        DailyEntry: The new entry, stamped with the current time.
    """
    _units: Dict[str, UnitEntry] = {}
    for name in unit_names or []:
        _units[name] = UnitEntry()
    for name, v in (units or {}).items():
        if isinstance(v, UnitEntry):
            _units[name] = UnitEntry(to_amount(v.income), to_amount(v.cost))
        else:
            _units[name] = UnitEntry.from_dict(v)

    _items: List[BazarItem] = []
    for v in bazar_items or []:
        if isinstance(v, BazarItem):
            _items.append(BazarItem(name=v.name, cost=to_amount(v.cost), id=v.id))
        else:
            _items.append(BazarItem.from_dict(v))

    bazar_costs = sum(v.cost for v in _items)
    total_income = sum(v.income for v in _units.values())
    total_vehicle_cost = sum(v.cost for v in _units.values())

    return DailyEntry(
        id=entry_id or new_id(),
        date=date,
        units=_units,
        bazar_items=_items,
        bazar_costs=bazar_costs,
        total_income=total_income,
        total_vehicle_cost=total_vehicle_cost,
        available_balance=total_income - (total_vehicle_cost + bazar_costs),
        updated_at=now_ms(),
    )
