"""
Service context for log lines.

Identifies which deployment and which process wrote a line, so webhook
deliveries handled by different workers can be told apart.
"""

from functools import lru_cache
import os
import socket


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'ticket-reconciliation')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container hostnames are already unique per task; locally fall back to the PID
    hostname = os.getenv('HOSTNAME') or socket.gethostname()
    worker = f'{hostname[:12]}/{os.getpid()}' if deploy_env != 'local_dev' else str(os.getpid())

    return f'{service_name}@{deploy_env}:{worker}'
