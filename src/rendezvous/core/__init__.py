from .models import Agent, Venue, ConvergenceResult
from .config import EngineConfig, load_config, config_from_env
from .errors import EngineError
from .engine import ConvergenceEngine, detect_convergences
from .partition import detect_partitioned, partition_agents
from .loader import agents_from_frame, venues_from_frame
from .summary import results_to_frame, summarize_results
from .geo import FlatEarthProjection, LatitudeCorrectedProjection
