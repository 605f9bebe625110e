"""Per-precinct estimate record."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from pyturnout.models._base import TurnoutBaseModel, TurnoutTimestamp


class EstimateRecord(TurnoutBaseModel):
    """Latest known estimate for one entity within one partition.

    Parameters
    ----------
    key : str
        Entity (precinct) key, unique within a partition.
    partition : str
        Partition (election type) the record belongs to.
    prior_mean : float or None
        Historical baseline turnout.
    posterior_mean : float or None
        Calibrated estimate after live observations were folded in.
    prior_spread, posterior_spread : float or None
        Standard deviations of the prior and posterior.
    divergence_z : float or None
        How far the current estimate deviates from its baseline, in
        standard units.
    delta_mean : float or None
        Posterior minus prior, as reported upstream.
    effective_count : float
        Weight of the observations folded in so far. Never negative.
    visible : bool
        Whether the calibrated estimate may be shown (k-anonymity gate,
        applied upstream).
    updated_at : datetime or None
        Upstream modification time.
    """

    key: str = Field(validation_alias=AliasChoices("key", "geo_id", "entity_key"))
    partition: str = Field(validation_alias=AliasChoices("partition", "election_type"))
    prior_mean: float | None = Field(
        default=None,
        validation_alias=AliasChoices("prior_mean", "mu_prior", "priorMean"),
    )
    posterior_mean: float | None = Field(
        default=None,
        validation_alias=AliasChoices("posterior_mean", "mu_post", "posteriorMean"),
    )
    prior_spread: float | None = Field(
        default=None,
        validation_alias=AliasChoices("prior_spread", "sigma_prior", "priorSpread"),
    )
    posterior_spread: float | None = Field(
        default=None,
        validation_alias=AliasChoices("posterior_spread", "sigma_post", "posteriorSpread"),
    )
    divergence_z: float | None = Field(default=None, validation_alias=AliasChoices("divergence_z", "divergenceZ"))
    delta_mean: float | None = Field(default=None, validation_alias=AliasChoices("delta_mean", "deltaMean"))
    effective_count: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("effective_count", "n_eff", "effectiveCount"),
    )
    visible: bool = Field(default=False, validation_alias=AliasChoices("visible", "is_visible"))
    updated_at: TurnoutTimestamp | None = Field(default=None, validation_alias=AliasChoices("updated_at", "updatedAt"))

    @field_validator("key", "partition")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must be non-empty")
        return text

    def displayed_mean(self, fallback_prior: float | None = None) -> float | None:
        """Mean to display: the posterior once visible, otherwise the prior.

        *fallback_prior* is used when the record carries no prior of its
        own (e.g. a baseline taken from precinct geometry).
        """
        prior = self.prior_mean if self.prior_mean is not None else fallback_prior
        if self.visible and self.posterior_mean is not None:
            return self.posterior_mean
        return prior
