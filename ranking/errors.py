"""Exceptions raised by the ranking engine"""


class RankingError(Exception):
    """Base class for ranking engine errors"""


class InvalidInputError(RankingError):
    """Caller supplied a value the engine cannot clamp into range"""


class UnknownStrategyError(InvalidInputError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown feed strategy: {name!r}")


class VideoNotFoundError(RankingError):
    def __init__(self, video_id: int):
        self.video_id = video_id
        super().__init__(f"Video {video_id} not found")
