"""Analysis ID generation with scannable parameter slug format."""

import re
from datetime import datetime, timezone

from netergm.config.experiment import AnalysisConfig
from netergm.model.terms import parse_formula


def generate_analysis_id(config: AnalysisConfig) -> str:
    """Generate a scannable analysis ID from config parameters.

    Format: {terms}_s{seed}_{YYYYMMDD}_{HHMMSS}
    Example: edges-mutual-nodematch.party_s42_20261019_143012

    Term labels are joined with "-" and truncated so directory names stay
    readable in file listings.
    """
    ts = datetime.now(timezone.utc)
    terms = "-".join(parse_formula(config.model.formula).labels)
    terms = re.sub(r"[^\w.\-]", "", terms)[:60]
    return f"{terms}_s{config.seed}_{ts.strftime('%Y%m%d_%H%M%S')}"
