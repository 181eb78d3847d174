# ==============================================================================
# API HTTP - Rutas JSON para el front-end del punto de venta
# ==============================================================================
# Las rutas solo orquestan request → servicio → response.
# Toda la lógica vive en services/, el estado en el store del contenedor.
#
# Cada ruta corresponde a una acción del front-end:
#   onSale        → POST   /api/sales
#   onPurchase    → POST   /api/purchases
#   onUpdateStock → POST   /api/products/<id>/stock
#   onAddCustomer → POST   /api/customers
#   onAddUser     → POST   /api/users
#   onAddApp      → POST   /api/apps
#   onRemoveApp   → DELETE /api/apps/<id>
# ==============================================================================

from dataclasses import is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from flask import Blueprint, Flask, current_app, jsonify, request, session

from pos_sync.app_container import AppContainer, get_container
from pos_sync.services import StockCountSession
from pos_sync.sync_logger import init_profiling

api = Blueprint('api', __name__, url_prefix='/api')


def _container() -> AppContainer:
    return current_app.config['CONTAINER']


def _serialize(value: Any) -> Any:
    """Convierte entidades, enums y Decimal a tipos JSON."""
    if is_dataclass(value) and hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


def _respond(result: dict, success_status: int = 200):
    status = success_status if result.get('ok') else 400
    return jsonify(_serialize(result)), status


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ═══════════════════════════════════════════════════════════════════════════════
# DATOS Y SINCRONIZACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/data', methods=['GET'])
def get_data():
    """Snapshot local completo (nunca espera a la red)."""
    return jsonify(_container().store.to_dict())


@api.route('/sync', methods=['POST'])
def sync_now():
    """Relee el endpoint remoto (reintenta aunque un 404 previo lo dejó offline)."""
    container = _container()
    container.sync_client.go_online()
    data = container.sync_client.fetch_snapshot()
    return jsonify({'ok': True, 'offline': container.sync_client.offline, 'data': data.to_dict()})


@api.route('/queue', methods=['GET'])
def queue_status():
    container = _container()
    queue = container.write_queue
    return jsonify({
        'pending': queue.pending(),
        'running': queue.is_running,
        'offline': container.sync_client.offline,
        'recent': queue.recent(),
    })


# ═══════════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/login', methods=['POST'])
def login():
    data = _payload()
    result = _container().auth_service.login(data.get('username'), data.get('password'))
    if not result['ok']:
        return jsonify(result), 401
    session['user'] = result['user']['username']
    session['role'] = result['user']['role']
    return jsonify(result)


@api.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'ok': True})


# ═══════════════════════════════════════════════════════════════════════════════
# VENTAS Y COMPRAS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/sales', methods=['POST'])
def create_sale():
    data = _payload()
    result = _container().transaction_service.checkout(
        data.get('items') or data.get('cart') or [],
        payment_method=data.get('paymentMethod'),
        payment_type=data.get('paymentType') or 'contado',
        customer=data.get('customer'),
        exchange_rate=data.get('exchangeRate'),
    )
    return _respond(result, 201)


@api.route('/purchases', methods=['POST'])
def create_purchase():
    data = _payload()
    result = _container().transaction_service.record_purchase(data.get('supplier'), data.get('items') or [])
    return _respond(result, 201)


# ═══════════════════════════════════════════════════════════════════════════════
# INVENTARIO
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/products/<product_id>/stock', methods=['POST'])
def update_stock(product_id):
    data = _payload()
    return _respond(_container().transaction_service.update_stock(product_id, data.get('stock')))


@api.route('/stock-count', methods=['POST'])
def stock_count():
    """
    Conteo físico.

    Body: {"codes": ["ACC-001", "ACC-001", ...], "counts": {"PROD-001": 3}}
    """
    data = _payload()
    codes = data.get('codes') or []
    counts = data.get('counts') or {}
    if not isinstance(codes, list) or not all(isinstance(code, str) for code in codes):
        return jsonify({'ok': False, 'error': 'Los códigos escaneados deben ser una lista de textos'}), 400
    if not isinstance(counts, dict):
        return jsonify({'ok': False, 'error': 'Los conteos deben ser un objeto {código: cantidad}'}), 400

    count_session = StockCountSession()
    count_session.scan_many(codes)
    for code, count in counts.items():
        try:
            count_session.set_count(code, int(count))
        except (TypeError, ValueError):
            return jsonify({'ok': False, 'error': f"Conteo inválido para {code}"}), 400

    service = _container().stock_count_service
    report = service.build_report(count_session)
    return jsonify(_serialize({'ok': True, 'report': report, 'summary': service.summarize(report)}))


# ═══════════════════════════════════════════════════════════════════════════════
# CLIENTES, USUARIOS, APPS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/customers', methods=['POST'])
def add_customer():
    return _respond(_container().transaction_service.add_customer(_payload()), 201)


@api.route('/users', methods=['POST'])
def add_user():
    return _respond(_container().transaction_service.add_user(_payload()), 201)


@api.route('/apps', methods=['POST'])
def add_app():
    return _respond(_container().transaction_service.add_app(_payload()), 201)


@api.route('/apps/<app_id>', methods=['DELETE'])
def remove_app(app_id):
    return _respond(_container().transaction_service.remove_app(app_id))


# ═══════════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APP
# ═══════════════════════════════════════════════════════════════════════════════

def create_app(container: AppContainer = None) -> Flask:
    """
    Crea la app Flask.

    Args:
        container: Contenedor ya configurado (por defecto el global)
    """
    container = container or get_container()
    app = Flask(__name__)
    app.secret_key = container.settings.secret_key
    app.config.update(
        CONTAINER=container,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
    )
    init_profiling(app)
    app.register_blueprint(api)
    return app
