# salesdesk/constants/roles.py

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    SALES = "sales"
    FINANCE = "finance"
