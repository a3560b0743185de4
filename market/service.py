from market.broker import Broker

# single shared broker for the HTTP app
market_broker = Broker()


def get_status():
    return market_broker.status()
