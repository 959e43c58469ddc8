"""
Run the front end with uvicorn.
"""

import uvicorn
from loguru import logger
from idp_gateway.app import create_app
from idp_gateway.config import settings


def main():
    options = {
        "host": "0.0.0.0",
        "port": settings.port,
        "proxy_headers": settings.trust_proxy,
        "forwarded_allow_ips": "*" if settings.trust_proxy else None,
    }
    if not settings.production:
        # Local runs terminate TLS themselves; production sits behind a proxy.
        options["ssl_keyfile"] = settings.tls_key_path
        options["ssl_certfile"] = settings.tls_cert_path
    logger.info(f"Starting on port {settings.port} ({settings.environment})")
    uvicorn.run(create_app(), **options)


if __name__ == "__main__":
    main()
