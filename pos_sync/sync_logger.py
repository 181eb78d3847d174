# ==============================================================================
# LOG DE SINCRONIZACIÓN Y PROFILING
# ==============================================================================
# Registra los eventos de sincronización con la nube y mide cuánto tardan
# las llamadas remotas y las rutas de la API. Guarda logs legibles en /logs/.
#
# ACTIVAR/DESACTIVAR: variable de entorno POS_SYNC_LOG (por defecto activo)
# ==============================================================================

import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_SYNC_LOG = os.environ.get('POS_SYNC_LOG', '1').strip().lower() not in ('0', 'false', 'no', 'off')

# Mostrar también los eventos INFO en consola (WARNING/ERROR siempre se muestran)
VERBOSE = os.environ.get('POS_SYNC_VERBOSE', '0').strip().lower() in ('1', 'true', 'yes', 'on')

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300     # Rutas locales
THRESHOLD_CRITICAL = 700
REMOTE_WARNING = 2000       # Llamadas al endpoint remoto
REMOTE_CRITICAL = 5000

LOGS_DIR = os.environ.get('POS_SYNC_LOGS_DIR') or os.path.join(os.path.dirname(__file__), 'logs')

SYNC_LOG = 'sync.log'
PERFORMANCE_LOG = 'performance.log'
SLOW_REQUESTS_LOG = 'slow_requests.log'

_write_lock = threading.Lock()


def _log_path(filename):
    return os.path.join(LOGS_DIR, filename)


def _get_timestamp():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _write_log(filename, content):
    """Agrega contenido a un archivo de log. Un fallo de log nunca afecta la app."""
    try:
        with _write_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(_log_path(filename), 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        pass


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ EVENTOS DE SINCRONIZACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def log_sync_event(tag, message, level='INFO'):
    """
    Registra un evento de sincronización.

    Args:
        tag: Componente que reporta (SYNC, QUEUE, STORE, VENTA...)
        message: Texto legible
        level: INFO, WARNING o ERROR
    """
    if not ENABLE_SYNC_LOG:
        return

    if level != 'INFO' or VERBOSE:
        print(f"[{tag}] {message}")

    _write_log(SYNC_LOG, f"{_get_timestamp()} [{level}] [{tag}] {message}\n")


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ DECORADOR PARA LLAMADAS REMOTAS
# ═══════════════════════════════════════════════════════════════════════════

_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()


def profile_function(func=None, name=None):
    """
    Decorador para medir llamadas al endpoint remoto.

    Uso:
        @profile_function(name="Descargar snapshot")
        def fetch_snapshot(self):
            ...
    """
    def decorator(fn):
        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    if elapsed_ms > stats['max_time']:
                        stats['max_time'] = elapsed_ms

                if ENABLE_SYNC_LOG and elapsed_ms >= REMOTE_WARNING:
                    _log_slow_call(func_name, elapsed_ms)

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


def _log_slow_call(func_name, time_ms):
    severity = 'CRÍTICO' if time_ms >= REMOTE_CRITICAL else 'LENTO'
    log_entry = f"""
[{severity}] {_get_timestamp()}
Llamada: {func_name}
Tiempo: {time_ms:.0f} ms
────────────────────────────────────────
"""
    _write_log(SLOW_REQUESTS_LOG, log_entry)


def get_function_stats():
    """
    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2),
            }
        return result


def reset_stats():
    """Reinicia todas las estadísticas (útil para testing)"""
    with _stats_lock:
        _function_stats.clear()


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Registra hooks before_request/after_request que miden cada ruta de la API.

    Uso:
        init_profiling(app)
    """
    if not ENABLE_SYNC_LOG:
        return

    @app.before_request
    def _start_timer():
        from flask import g
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        from flask import g, request

        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000
        _write_log(
            PERFORMANCE_LOG,
            f"{_get_timestamp()} {request.method} {request.path} {response.status_code} {elapsed:.0f} ms\n",
        )
        if elapsed >= THRESHOLD_WARNING:
            level = 'ERROR' if elapsed >= THRESHOLD_CRITICAL else 'WARNING'
            log_sync_event('API', f"Ruta lenta {request.method} {request.path}: {elapsed:.0f} ms", level=level)
        return response


__all__ = [
    'ENABLE_SYNC_LOG',
    'log_sync_event',
    'profile_function',
    'get_function_stats',
    'reset_stats',
    'init_profiling',
]
