"""AAKB worker management package.

Organized by feature modules (attendance, leaves, holidays, tasks, ...)
with a thin Flask controller layer over service/repository layers.
"""
