import logging

SERVER_HOST = "0.0.0.0"  # all interfaces
CLIENT_HOST = "127.0.0.1"
PORT = 6000

BACKLOG = 5  # pending connections queued by the kernel
MAX_RECV_LEN = 255  # client buffer is MAX_RECV_LEN + 1
GREETING = b"Hello, Client!\n"
ENCODING = "ascii"
ACCEPT_POLL_INTERVAL = 0.5  # seconds between shutdown checks

LOG_LEVEL = logging.INFO
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
