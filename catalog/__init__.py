"""catalog/ -- Authors and books: domain dataclasses and their SQL store.

Layer rule: catalog/ does not import from api/ or auth/.
"""
