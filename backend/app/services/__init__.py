from .seed_service import init_sample_data

__all__ = [
    "init_sample_data",
]
