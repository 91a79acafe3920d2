"""Academy attendance package.

Organized by feature modules (attendance, devices, events, resolution, sync)
with a thin Flask controller layer over service/repository layers.
"""
