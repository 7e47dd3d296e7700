import logging
import sys

# Shared console handler for every logger that doesn't configure its own.
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.DEBUG)
formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
console_handler.setFormatter(formatter)

# Application loggers (using __name__) inherit from the root logger.
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.addHandler(console_handler)

# numba compiles the M-step kernels on first use and is very chatty about it
logging.getLogger("numba").setLevel(logging.WARNING)
