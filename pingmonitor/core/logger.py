import logging
import sys

# Config básica
logger = logging.getLogger("PINGMONITOR")
logger.setLevel(logging.DEBUG)

handler = logging.StreamHandler(sys.stdout)
formatter = logging.Formatter("[%(asctime)s] [%(levelname)s] (%(name)s) - %(message)s")

handler.setFormatter(formatter)
logger.addHandler(handler)


def get_logger(name: str = None):
    # Los módulos del paquete cuelgan del logger "PINGMONITOR"
    if name is None:
        return logger
    if name.startswith("pingmonitor"):
        name = "PINGMONITOR" + name[len("pingmonitor"):]
    return logging.getLogger(name)
