# ==============================================================================
# SERVICIO DE CONTEO FÍSICO - Auditoría de inventario con escáner
# ==============================================================================
# Se escanean los códigos (SKU/IMEI) de lo que hay en la tienda y se compara
# contra el stock del sistema:
#   matched → conteo igual al stock
#   missing → se escaneó menos de lo que dice el sistema
#   surplus → se escaneó de más, o el código no existe en el catálogo
# ==============================================================================

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pos_sync.models import CountStatus, Product
from pos_sync.repositories.cache_store import LocalCacheStore

# Orden del reporte: primero sobrantes, luego faltantes, luego correctos
_STATUS_PRIORITY = {
    CountStatus.SURPLUS: 0,
    CountStatus.MISSING: 1,
    CountStatus.MATCHED: 2,
}


class StockCountSession:
    """Conteo en curso: código escaneado → unidades contadas."""

    def __init__(self):
        self.scanned: Dict[str, int] = OrderedDict()
        self.last_scanned: Optional[str] = None

    def scan(self, code: str, count: int = 1) -> int:
        """
        Registra un escaneo (suma `count` unidades al código).

        Returns:
            Total contado para ese código
        """
        code = (code or '').strip()
        if not code:
            return 0
        self.scanned[code] = self.scanned.get(code, 0) + count
        self.last_scanned = code
        return self.scanned[code]

    def scan_many(self, codes: Iterable[str]) -> None:
        for code in codes:
            self.scan(code)

    def set_count(self, code: str, count: int) -> None:
        """Fija el conteo de un código (corrección manual)."""
        code = (code or '').strip()
        if code:
            self.scanned[code] = max(0, int(count))


class StockCountService:
    """Construye el reporte de conteo contra el store local."""

    def __init__(self, store: LocalCacheStore):
        self.store = store

    def build_report(self, session: StockCountSession) -> List[Dict[str, Any]]:
        """
        Compara lo escaneado con el stock del sistema.

        Returns:
            Lista de filas {sku, product, systemQty, scannedQty, difference, status}
        """
        report = []
        processed = set()

        for product in self.store.get_all('products'):
            processed.add(product.sku)
            physical = session.scanned.get(product.sku, 0)
            if physical < product.stock:
                status = CountStatus.MISSING
            elif physical > product.stock:
                status = CountStatus.SURPLUS
            else:
                status = CountStatus.MATCHED
            report.append(self._row(product.sku, product, product.stock, physical, status))

        for sku, physical in session.scanned.items():
            if sku not in processed:
                report.append(self._row(sku, None, 0, physical, CountStatus.SURPLUS))

        report.sort(key=lambda row: _STATUS_PRIORITY[row['status']])
        return report

    @staticmethod
    def _row(sku: str, product: Optional[Product], system_qty: int, scanned_qty: int,
             status: CountStatus) -> Dict[str, Any]:
        return {
            'sku': sku,
            'product': product.to_dict() if product else None,
            'systemQty': system_qty,
            'scannedQty': scanned_qty,
            'difference': scanned_qty - system_qty,
            'status': status,
        }

    def summarize(self, report: List[Mapping[str, Any]]) -> Dict[str, int]:
        """
        Returns:
            {matched, missing, surplus, progress} con progress en % (0-100)
        """
        matched = sum(1 for r in report if r['status'] == CountStatus.MATCHED)
        missing = sum(1 for r in report if r['status'] == CountStatus.MISSING)
        surplus = sum(1 for r in report if r['status'] == CountStatus.SURPLUS)
        # Solo cuentan los productos del catálogo, no los códigos desconocidos
        known = sum(1 for r in report if r['product'] is not None)
        product_count = len(self.store.get_all('products'))
        if not product_count:
            return {'matched': matched, 'missing': missing, 'surplus': surplus, 'progress': 0}
        return {
            'matched': matched,
            'missing': missing,
            'surplus': surplus,
            'progress': round((known - missing) / product_count * 100),
        }
