"""Analysis configuration dataclasses, all frozen and slotted for immutability."""

from dataclasses import dataclass, field

COMPONENT_POLICIES = ("largest_weak", "all")
PROPOSALS = ("tnt", "random")
GOF_STATISTICS = ("idegree", "odegree", "model")


@dataclass(frozen=True, slots=True)
class DataConfig:
    """Input tables and how to read them."""

    vertices_path: str = "data/vertices.csv"
    edges_path: str = "data/edges.csv"
    id_column: str = "id"
    source_column: str = "source"
    target_column: str = "target"
    # "largest_weak" keeps the largest weakly-connected component only
    component_policy: str = "largest_weak"


@dataclass(frozen=True, slots=True)
class AssortativityConfig:
    """Attributes screened for homophily before modelling."""

    categorical: tuple[str, ...] = ("chamber", "party", "gender")
    numeric: tuple[str, ...] = ("followers_count",)
    include_degree: bool = True
    n_permutations: int = 500


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """ERGM formula, e.g. "edges + mutual + nodematch(party)"."""

    formula: str = "edges + mutual + nodematch(chamber) + nodematch(party) + nodematch(gender)"


@dataclass(frozen=True, slots=True)
class MCMCConfig:
    """MCMC-MLE tuning knobs. Larger values trade wall-clock for reliability."""

    burnin: int = 20_000
    interval: int = 200
    sample_size: int = 1024
    max_iterations: int = 20
    tolerance: float = 0.1  # max |t-ratio| of (observed - simulated mean)
    step_length: float = 1.0
    ridge: float = 1e-6
    proposal: str = "tnt"


@dataclass(frozen=True, slots=True)
class GOFConfig:
    """Goodness-of-fit simulation parameters."""

    n_sims: int = 100
    statistics: tuple[str, ...] = GOF_STATISTICS
    max_degree: int | None = None  # None = largest degree observed or simulated


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Top-level analysis configuration composing all sub-configs.

    All fields are frozen and typed. Cross-parameter validation runs
    in __post_init__ to reject invalid configurations early.
    """

    data: DataConfig = field(default_factory=DataConfig)
    assortativity: AssortativityConfig = field(default_factory=AssortativityConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    mcmc: MCMCConfig = field(default_factory=MCMCConfig)
    gof: GOFConfig = field(default_factory=GOFConfig)
    seed: int = 42
    description: str = ""
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.data.component_policy not in COMPONENT_POLICIES:
            raise ValueError(
                f"component_policy must be one of {COMPONENT_POLICIES}, "
                f"got {self.data.component_policy!r}"
            )
        if self.mcmc.proposal not in PROPOSALS:
            raise ValueError(
                f"proposal must be one of {PROPOSALS}, got {self.mcmc.proposal!r}"
            )
        if self.mcmc.interval < 1:
            raise ValueError(f"interval must be >= 1, got {self.mcmc.interval}")
        if self.mcmc.burnin < 0:
            raise ValueError(f"burnin must be >= 0, got {self.mcmc.burnin}")
        if self.mcmc.sample_size < 2:
            raise ValueError(
                f"sample_size must be >= 2, got {self.mcmc.sample_size}"
            )
        if self.mcmc.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be >= 1, got {self.mcmc.max_iterations}"
            )
        if not 0.0 < self.mcmc.step_length <= 1.0:
            raise ValueError(
                f"step_length must be in (0, 1], got {self.mcmc.step_length}"
            )
        if self.mcmc.tolerance <= 0:
            raise ValueError(
                f"tolerance must be positive, got {self.mcmc.tolerance}"
            )
        if self.gof.n_sims < 1:
            raise ValueError(f"n_sims must be >= 1, got {self.gof.n_sims}")
        unknown = set(self.gof.statistics) - set(GOF_STATISTICS)
        if unknown:
            raise ValueError(
                f"Unknown GOF statistics {sorted(unknown)}; "
                f"expected a subset of {GOF_STATISTICS}"
            )
        if self.assortativity.n_permutations < 0:
            raise ValueError(
                f"n_permutations must be >= 0, "
                f"got {self.assortativity.n_permutations}"
            )
