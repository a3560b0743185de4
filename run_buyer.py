"""
Connects one buyer to the local broker and trades until the quota is met.
"""

# ==================================================
# STANDARD LIBRARY IMPORTS
# ==================================================
import asyncio
import sys

# ==================================================
# INTERNAL IMPORTS
# ==================================================
from buyer.agent import BuyerAgent
from market.pricing import ProtocolError


# ==================================================
# MAIN ENTRY POINT
# ==================================================
def main() -> int:
    agent = BuyerAgent()

    try:
        result = asyncio.run(agent.buy())
    except ConnectionRefusedError as e:
        print(f"❌ Broker not reachable: {e}")
        return 1
    except ProtocolError as e:
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n🛑 Buyer interrupted")
        return 130

    print(f"📊 {result.purchases} purchases out of {result.offers} offers")
    return 0


# ==================================================
# SCRIPT EXECUTION
# ==================================================
if __name__ == "__main__":
    sys.exit(main())
