# Signals package

from .price_smoother import PriceSmoother

__all__ = ['PriceSmoother']
