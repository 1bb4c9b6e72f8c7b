"""School Platform package.

Organized by feature modules (qrcodes, attendance, ...) with a thin Flask
controller layer over service/repository layers.
"""
