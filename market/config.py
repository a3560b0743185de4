# market/config.py

# =====================================
# NETWORK
# =====================================

HOST = "0.0.0.0"
PORT = 9090

# =====================================
# BROADCAST
# =====================================

BUYER_THRESHOLD = 2            # buyers needed before the first tick
BROADCAST_INTERVAL_SECONDS = 2.0
WRITE_TIMEOUT_SECONDS = 1.0    # per-connection deadline for one tick

PRICE_MIN = 10
PRICE_MAX = 100

# =====================================
# BUYER
# =====================================

COUNTER_OFFER_MIN = 10
COUNTER_OFFER_MAX = 75
PURCHASE_QUOTA = 10

# =====================================
# WIRE MESSAGES
# =====================================

PURCHASE_REQUEST = "Purchase request"
FINISHED_PURCHASING = "Finished purchasing"
ENCODING = "utf-8"
