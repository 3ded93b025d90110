"""FarmGate domain: pricing, cart and order-tracking elements.

Elements register themselves with ``farmgate`` when their modules are
imported; ``init_domain`` imports them all and initializes the domain.
"""

import structlog
from protean.domain import Domain

farmgate = Domain(name="farmgate")

logger = structlog.get_logger(__name__)


def init_domain() -> Domain:
    import storefront.cart.cart  # noqa: F401
    import storefront.pricing.resolver  # noqa: F401
    import tracking.order  # noqa: F401
    import tracking.stages  # noqa: F401

    farmgate.init(traverse=False)
    logger.debug("domain_initialized", domain=farmgate.name)
    return farmgate
