# salesdesk/constants/pagination.py

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
PAGE_LIMIT_OPTIONS = (20, 50, 100, 200)
