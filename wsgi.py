# ==============================================================================
# WSGI Entry Point - Para Gunicorn en producción
# ==============================================================================
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo (en sys.path automáticamente)
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── pos_sync/        <- Paquete Python
#       ├── main.py
#       ├── services/
#       └── repositories/
# ==============================================================================

from pos_sync.app_container import get_container
from pos_sync.main import create_app

container = get_container()

# Primero el snapshot local; la nube solo si responde dentro del timeout
container.bootstrap()

app = create_app(container)

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
