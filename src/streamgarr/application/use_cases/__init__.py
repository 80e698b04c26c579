from .aggregate_streams import AggregateStreamsUseCase
from .stremio_stream import StremioStreamUseCase

__all__ = ["AggregateStreamsUseCase", "StremioStreamUseCase"]
