# salesdesk/constants/cart.py

# Largest quantity a single cart line may hold
MAX_LINE_QUANTITY = 100_000
