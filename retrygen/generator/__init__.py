from retrygen.generator.factory import create_feature_generator
from retrygen.generator.feature_generator import UnitTestFeatureGenerator

__all__ = ["create_feature_generator", "UnitTestFeatureGenerator"]
