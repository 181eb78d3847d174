# ==============================================================================
# pos_sync - Núcleo de sincronización offline para el punto de venta
# ==============================================================================
# Paquete Python. Punto de entrada WSGI en ../wsgi.py
# ==============================================================================

__version__ = '1.0.0'
