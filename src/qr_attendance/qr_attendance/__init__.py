"""QR attendance package.

Organized by feature modules (sessions, attendance, teams, scanner, ...)
with a thin Flask controller layer over service/repository layers.
"""
