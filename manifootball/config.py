"""Configuration management for the manifootball tools."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


@dataclass
class FastcastConfig:
    """Live event feed configuration."""

    discovery_url: str = field(
        default_factory=lambda: os.getenv(
            "FASTCAST_DISCOVERY_URL",
            "https://fastcast.semfs.engsvc.go.com/public/websockethost",
        )
    )
    profile_path: str = "/FastcastService/pubsub/profiles/12000"
    token_param: str = "TrafficManager-Token"

    def ws_url(self, host: str, secure_port: int, token: str) -> str:
        return f"wss://{host}:{secure_port}{self.profile_path}?{self.token_param}={token}"


@dataclass
class StatsConfig:
    """College football statistics API configuration."""

    api_url: str = field(
        default_factory=lambda: os.getenv("CFB_API_URL", "https://api.collegefootballdata.com")
    )
    api_key: str = field(default_factory=lambda: os.getenv("CFB_API_KEY", ""))
    cache_path: str = field(
        default_factory=lambda: os.path.join(os.getenv("CACHE_PATH", ".cache"), "cfb")
    )
    year: int = field(default_factory=lambda: int(os.getenv("CFB_YEAR", "2023")))


@dataclass
class ManifoldConfig:
    """Market platform API configuration."""

    api_url: str = field(
        default_factory=lambda: os.getenv("MANIFOLD_API_URL", "https://api.manifold.markets/v0")
    )
    api_key: str = field(default_factory=lambda: os.getenv("MANIFOLD_API_KEY", ""))
    cache_path: str = field(
        default_factory=lambda: os.path.join(os.getenv("CACHE_PATH", ".cache"), "manifold")
    )


class Topic:
    """Live feed topics supported by the `live` command."""

    COLLEGE_FOOTBALL = "football-college-football"
    NHL = "hockey-nhl"

    ALL = [COLLEGE_FOOTBALL, NHL]


@dataclass
class LiveConfig:
    """Live snapshot recording configuration."""

    data_dir: str = field(default_factory=lambda: os.getenv("LIVE_DATA_DIR", "live-data"))
    default_topic: str = Topic.COLLEGE_FOOTBALL


@dataclass
class Config:
    """Main configuration container."""

    fastcast: FastcastConfig = field(default_factory=FastcastConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    manifold: ManifoldConfig = field(default_factory=ManifoldConfig)
    live: LiveConfig = field(default_factory=LiveConfig)


def load_config() -> Config:
    """Load configuration from environment."""
    return Config()
