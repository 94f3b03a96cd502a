from .synthetic import SyntheticFrameSource, SyntheticGate
