"""
ORM models for agents, customers, visits and the inventory captured on visits.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .agents import (  # noqa: F401
    Agent,
    AgentStatus,
)
from .customers import (  # noqa: F401
    Customer,
    CustomerStatus,
)
from .visits import (  # noqa: F401
    Visit,
)
from .inventory import (  # noqa: F401
    DEFAULT_ITEM_STATUS,
    InventoryItem,
)
