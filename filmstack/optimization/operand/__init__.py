from .spectrum import SpectrumOperand

__all__ = ["SpectrumOperand"]
