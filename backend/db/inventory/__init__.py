"""
Inventory (one stock row per SKU per location).

Models:
- InventoryItem: a SKU (name + category + language) stocked at exactly one location.
  The same SKU at another location is a separate row; transfers move stock between them.
"""
