class PeakShaveError(Exception): ...


class ConfigError(PeakShaveError): ...


class IntervalError(PeakShaveError): ...


class CatalogError(PeakShaveError): ...


class NoFeasibleBatteryError(CatalogError): ...


class SimulationError(PeakShaveError): ...


def require(condition: bool, message: str, exc: type[PeakShaveError] = PeakShaveError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
