class RateGraphException(Exception):
    pass


class InvalidCurrencyError(RateGraphException):
    pass


class InvalidRateError(RateGraphException):
    pass


class RateNotFoundError(RateGraphException):
    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(f'Exchange rate not available for {from_currency}/{to_currency}')


class ProviderError(RateGraphException):
    pass


class CacheError(RateGraphException):
    pass
