import logging
import os

from checkout import create_app

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "4000"))
    debug = os.getenv("CHECKOUT_ENV", "dev") == "dev"

    app.run(host=host, port=port, debug=debug)
