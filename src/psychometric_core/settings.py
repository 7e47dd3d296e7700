from functools import lru_cache

from pydantic_settings import BaseSettings

PSYCHOMETRIC_ENV_PREFIX = "PSYCHOMETRIC_"


class EngineSettings(BaseSettings):
    model_config = {"env_prefix": PSYCHOMETRIC_ENV_PREFIX}

    quadrature_points: int = 21
    prior_mean: float = 0.0
    prior_sd: float = 1.0
    mle_max_iterations: int = 50
    mle_tolerance: float = 0.001
    em_max_iterations: int = 50
    em_tolerance: float = 1e-4
    min_respondents: int = 3
    min_items: int = 10
    min_responses_per_item: int = 5
    kl_se_threshold: float = 0.5
    mirt_learning_rate: float = 0.1


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return EngineSettings()
