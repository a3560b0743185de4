"""
Runs the price broker until the last buyer disconnects.
"""

# ==================================================
# STANDARD LIBRARY IMPORTS
# ==================================================
import asyncio
import sys

# ==================================================
# INTERNAL IMPORTS
# ==================================================
from market.broker import Broker, BrokerBindError


# ==================================================
# MAIN ENTRY POINT
# ==================================================
def main() -> int:
    print("=" * 60)
    print("Market Broker")
    print("=" * 60)

    broker = Broker()

    try:
        asyncio.run(broker.serve())
    except BrokerBindError as e:
        print(f"❌ {e.strerror}")
        return 1
    except KeyboardInterrupt:
        print("\n🛑 Broker interrupted")
        return 130

    status = broker.status()
    print(f"📊 {status.ticks} prices sent, {status.purchase_requests} purchase requests received")
    return 0


# ==================================================
# SCRIPT EXECUTION
# ==================================================
if __name__ == "__main__":
    sys.exit(main())
