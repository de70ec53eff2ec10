import os
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()

# credentials
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# logging config
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEV").upper()

# file config
BASE_PATH = Path(__file__).parent
LOG_PATH = Path(os.getenv("LOG_PATH", BASE_PATH / "log"))

# Realtime endpoint
# https://platform.openai.com/docs/guides/realtime-websocket
REALTIME_BASE_URL = os.getenv("REALTIME_BASE_URL", "wss://api.openai.com/v1/realtime")
REALTIME_MODEL = os.getenv("REALTIME_MODEL", "gpt-4o-realtime-preview")
# Beta header is still required by the websocket endpoint for the v1 event names.
REALTIME_BETA_HEADER = "realtime=v1"

# Session defaults
REALTIME_VOICE = os.getenv("REALTIME_VOICE", "alloy")
REALTIME_INSTRUCTIONS = os.getenv("REALTIME_INSTRUCTIONS", "You are a helpful assistant. Keep answers short.")

# Websocket keepalive. The server drops idle sessions, pings keep NAT/proxies from doing it first.
WS_PING_INTERVAL_S = 10
WS_PING_TIMEOUT_S = 10
WS_CLOSE_TIMEOUT_S = 5
WS_OPEN_TIMEOUT_S = 10
# Audio deltas arrive in bursts, keep the receive buffer generous.
WS_MAX_QUEUE = 256
