"""
Simulation of sequences along a single branch under a substitution model.
"""

from typing import Dict, Optional, Union

import numpy as np

from .selection import cumulative_select_rows


def _check_distribution(distribution: np.ndarray, label: str) -> None:
    """Raise ValueError unless `distribution` is non-negative and sums to one."""
    if np.any(distribution < 0):
        raise ValueError(
            f"{label} has negative probabilities: {distribution.min()} found, >= 0 expected"
        )
    total = distribution.sum()
    if not np.isclose(total, 1.0, atol=1e-6):
        raise ValueError(f"{label} does not sum to one: {total} found, 1.0 expected")


class SequenceSimulator:
    """
    Draws sequences of fixed length under a substitution model.

    Every site belongs to one rate category of the model. Categories are
    assigned at construction (and on `reset_site_category_distribution`)
    either stochastically or contiguously in proportion to the category
    probabilities. In the contiguous case sites lost to rounding all go to
    the last category, which over-represents it when there are many
    categories and short sequences.

    Parameters
    ----------
    model : SubstitutionModel
        Model used for simulation (its current parameter values)
    sequence_length : int
        Number of sites in every simulated sequence
    rng : numpy.random.Generator, optional
        Random source (takes precedence over `seed`)
    seed : int, optional
        Seed for a new generator when `rng` is not given
    stochastic_distribution : bool, default=False
        Sample each site's category instead of assigning them contiguously

    Attributes
    ----------
    transition_store : np.ndarray, shape (n_categories, n_states, n_states)
        Scratch buffer overwritten by every `simulate` call; one simulator
        must not run `simulate` concurrently from several threads

    Examples
    --------
    >>> sim = SequenceSimulator(HKY(kappa=4.0), 500, seed=1)
    >>> root = sim.generate_root()
    >>> child = sim.get_simulated(root, 0.1)
    """

    def __init__(
        self,
        model,
        sequence_length: int,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        stochastic_distribution: bool = False,
    ):
        if sequence_length < 1:
            raise ValueError(f"sequence_length must be positive, got {sequence_length}")

        self.model = model
        self.sequence_length = int(sequence_length)
        self.n_states = model.n_states
        self.n_categories = model.n_categories
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.transition_store = model.create_transition_store()
        self._site_categories = np.zeros(self.sequence_length, dtype=np.int64)

        self.reset_site_category_distribution(stochastic_distribution)

    @property
    def site_categories(self) -> np.ndarray:
        """Category of every site (read-only view)."""
        view = self._site_categories.view()
        view.flags.writeable = False
        return view

    def reset_site_category_distribution(
        self,
        stochastic: bool,
        category_distribution: Optional[np.ndarray] = None,
    ) -> None:
        """
        Reassign every site's category.

        Parameters
        ----------
        stochastic : bool
            Sample each site independently; otherwise assign
            ``floor(sequence_length * prob[c])`` consecutive sites to each
            category c in order and the remainder to the last category
        category_distribution : np.ndarray, optional
            Category probabilities (default: the model's)
        """
        if category_distribution is None:
            category_distribution = self.model.category_probabilities
        category_distribution = np.asarray(category_distribution, dtype=np.float64)
        if category_distribution.shape != (self.n_categories,):
            raise ValueError(
                f"Category distribution has shape {category_distribution.shape}, "
                f"expected ({self.n_categories},)"
            )
        _check_distribution(category_distribution, "Category distribution")

        if stochastic:
            rows = np.broadcast_to(category_distribution, (self.sequence_length, self.n_categories))
            self._site_categories[:] = cumulative_select_rows(rows, self.rng.random(self.sequence_length))
            return

        index = 0
        for category in range(self.n_categories):
            count = int(self.sequence_length * category_distribution[category])
            count = min(count, self.sequence_length - index)
            self._site_categories[index:index + count] = category
            index += count
        self._site_categories[index:] = self.n_categories - 1

    def resample_site_categories(
        self,
        posterior: np.ndarray,
        base: Union[None, "SequenceSimulator", np.ndarray] = None,
    ) -> None:
        """
        Resample categories conditioned on previous ones.

        Site i receives a category drawn from ``posterior[previous[i]]``.

        Parameters
        ----------
        posterior : np.ndarray, shape (n_categories, n_categories)
            Row k is the category distribution for sites previously in k
        base : None, SequenceSimulator or np.ndarray
            Source of the previous categories: this simulator (None), another
            simulator, or an explicit per-site category array. It must cover
            exactly `sequence_length` sites.
        """
        if base is None:
            previous = self._site_categories.copy()
        elif isinstance(base, SequenceSimulator):
            if base.sequence_length != self.sequence_length:
                raise ValueError(
                    f"Base simulator has incompatible sequence length: "
                    f"{base.sequence_length} found, {self.sequence_length} expected"
                )
            previous = base._site_categories.copy()
        else:
            previous = np.asarray(base, dtype=np.int64)
            if previous.shape != (self.sequence_length,):
                raise ValueError(
                    f"Base categories have incompatible length: "
                    f"{previous.shape} found, ({self.sequence_length},) expected"
                )

        posterior = np.asarray(posterior, dtype=np.float64)
        if posterior.ndim != 2 or posterior.shape[1] != self.n_categories:
            raise ValueError(
                f"posterior must have shape (n, {self.n_categories}), got {posterior.shape}"
            )
        if np.any(previous < 0) or np.any(previous >= posterior.shape[0]):
            raise ValueError("Base categories out of range for the posterior distribution")
        for k, row in enumerate(posterior):
            _check_distribution(row, f"Posterior row {k}")

        self._site_categories[:] = cumulative_select_rows(
            posterior[previous], self.rng.random(self.sequence_length)
        )

    def _check_sequence(self, sequence: np.ndarray, label: str) -> np.ndarray:
        sequence = np.asarray(sequence)
        if sequence.shape != (self.sequence_length,):
            raise ValueError(
                f"{label} has shape {sequence.shape}, expected ({self.sequence_length},)"
            )
        return sequence

    def simulate(self, start: np.ndarray, distance: float, out: np.ndarray) -> None:
        """
        Evolve `start` along a branch of length `distance`, writing into `out`.

        Parameters
        ----------
        start : np.ndarray, shape (sequence_length,)
            Starting states (indices in [0, n_states))
        distance : float
            Branch length in expected substitutions per site
        out : np.ndarray, shape (sequence_length,)
            Integer buffer receiving the ending states
        """
        start = self._check_sequence(start, "Starting sequence")
        self._check_sequence(out, "Output buffer")
        if np.any(start < 0) or np.any(start >= self.n_states):
            raise ValueError(f"Starting sequence has states outside [0, {self.n_states})")

        self.model.transition_probabilities(distance, self.transition_store)
        rows = self.transition_store[self._site_categories, start]
        out[:] = cumulative_select_rows(rows, self.rng.random(self.sequence_length))

    def get_simulated(self, start: np.ndarray, distance: float) -> np.ndarray:
        """Evolve `start` along a branch and return a new sequence."""
        out = np.empty(self.sequence_length, dtype=np.int8)
        self.simulate(start, distance, out)
        return out

    def generate_root(self) -> np.ndarray:
        """Draw every site from the equilibrium frequencies."""
        rows = np.broadcast_to(self.model.frequencies, (self.sequence_length, self.n_states))
        return cumulative_select_rows(rows, self.rng.random(self.sequence_length)).astype(np.int8)

    def get_parameters(self) -> Dict:
        """Simulation metadata for output."""
        return {
            'model': type(self.model).__name__,
            'parameters': dict(zip(self.model.parameter_names, self.model.parameters.tolist())),
            'frequencies': self.model.frequencies.tolist(),
            'sequence_length': self.sequence_length,
            'n_categories': self.n_categories,
            'category_counts': np.bincount(
                self._site_categories, minlength=self.n_categories
            ).tolist(),
        }

    def __repr__(self) -> str:
        return (
            f"SequenceSimulator(model={self.model!r}, "
            f"sequence_length={self.sequence_length})"
        )
