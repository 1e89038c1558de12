"""
Engine exceptions
"""


class SignalPricingError(Exception):
    """Base class for engine errors"""


class ProductNotEligibleError(SignalPricingError):
    """Product is missing, inactive or soft-deleted"""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is not eligible for recalculation")


class RecalculationInProgressError(SignalPricingError):
    """A batch run is already in progress in this process"""
