from .layer_thickness import LayerThicknessVariable

__all__ = ["LayerThicknessVariable"]
