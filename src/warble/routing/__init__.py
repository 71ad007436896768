"""Routing — pattern compilation and the ordered route table.

Routes are registered during setup and frozen into an immutable
table when the app is built.
"""
