"""
High-level API for substitution-model estimation and simulation.

This module provides a simplified interface over `ParameterEstimator` and
the simulators, with a unified result object and automatic input loading.
"""

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .io.patterns import SitePattern
from .io.sequences import Alignment
from .io.trees import Tree
from .optimize.estimator import FRAC_DIGITS, ParameterEstimator
from .simulate.sequence import SequenceSimulator
from .simulate.tree import TreeSimulator


@dataclass
class EstimationResult:
    """
    Result of a maximum-likelihood parameter estimation.

    Attributes
    ----------
    model_name : str
        Name of the substitution model (e.g. "HKY")
    parameter_names : list[str]
        Free parameter names, in model order
    parameters : np.ndarray
        Estimates rounded to FRAC_DIGITS decimals
    standard_errors : np.ndarray
        Standard errors (non-finite where the curvature is not positive)
    lnL : float
        Log-likelihood at the estimates
    tree : Tree
        Tree used in the final round (neighbor joining or supplied)
    n_iterations : int
        Outer estimation rounds

    Examples
    --------
    >>> result = estimate_parameters(HKY(), "alignment.fasta")
    >>> print(result.summary())
    >>> result.params['kappa']
    """

    model_name: str
    parameter_names: List[str]
    parameters: np.ndarray
    standard_errors: np.ndarray
    lnL: float
    tree: Tree
    n_iterations: int

    @property
    def params(self) -> Dict[str, float]:
        """Estimates keyed by parameter name."""
        return dict(zip(self.parameter_names, self.parameters.tolist()))

    @property
    def n_params(self) -> int:
        return len(self.parameter_names)

    def summary(self) -> str:
        """
        Generate human-readable summary of estimation results.

        Returns
        -------
        str
            Formatted multi-line summary with parameters and standard errors
        """
        lines = []
        lines.append("=" * 70)
        lines.append(f"MODEL: {self.model_name}")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Log-likelihood:       {self.lnL:.6f}")
        lines.append(f"Number of parameters: {self.n_params}")
        lines.append(f"Iterations:           {self.n_iterations}")
        lines.append("")
        lines.append("PARAMETERS:")
        if not self.parameter_names:
            lines.append("  (none)")
        for name, value, se in zip(self.parameter_names, self.parameters, self.standard_errors):
            lines.append(f"  {name:<10} = {value:.{FRAC_DIGITS}f}  (SE {se:.{FRAC_DIGITS + 1}f})")

        lines.append("")
        lines.append("TREE:")
        n_branches = sum(1 for node in self.tree.postorder() if node.parent is not None)
        lines.append(f"  {self.tree.n_leaves} sequences")
        lines.append(f"  {n_branches} branches")
        lines.append(f"  {self.tree.to_newick()}")

        lines.append("")
        lines.append("=" * 70)

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """
        Export results as a JSON-serializable dictionary.

        The tree is exported as a Newick string; non-finite standard errors
        become None.
        """
        return {
            'model_name': self.model_name,
            'lnL': float(self.lnL),
            'params': self.params,
            'standard_errors': {
                name: (float(se) if np.isfinite(se) else None)
                for name, se in zip(self.parameter_names, self.standard_errors)
            },
            'n_params': self.n_params,
            'n_iterations': int(self.n_iterations),
            'tree': self.tree.to_newick(),
        }

    def __str__(self) -> str:
        return self.summary()

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v:.{FRAC_DIGITS}f}" for k, v in self.params.items())
        return f"EstimationResult(model='{self.model_name}', lnL={self.lnL:.2f}, {params})"


def _load_alignment(alignment: Union[str, Path, Alignment]) -> Alignment:
    """
    Load alignment with format detection from the file extension.

    Raises
    ------
    FileNotFoundError
        If the alignment file doesn't exist
    """
    if isinstance(alignment, Alignment):
        return alignment

    path = Path(alignment)
    if not path.exists():
        raise FileNotFoundError(f"Alignment file not found: {path}")

    if path.suffix.lower() in ('.phy', '.phylip'):
        return Alignment.from_phylip(path)
    if path.suffix.lower() in ('.fa', '.fasta', '.fna', '.fas'):
        return Alignment.from_fasta(path)

    with open(path) as f:
        first = f.readline().strip()
    if first.startswith('>'):
        return Alignment.from_fasta(path)
    return Alignment.from_phylip(path)


def _load_site_pattern(data: Union[str, Path, Alignment, SitePattern]) -> SitePattern:
    if isinstance(data, SitePattern):
        return data
    return SitePattern.from_alignment(_load_alignment(data))


def _load_tree(tree: Union[str, Path, Tree]) -> Tree:
    """
    Load tree from Newick file or string.

    Raises
    ------
    ValueError
        If tree parsing fails
    """
    if isinstance(tree, Tree):
        return tree

    path_or_str = str(tree)
    # Newick strings can exceed the file name length limit, so don't stat them
    if path_or_str.lstrip().startswith('(') or not Path(path_or_str).exists():
        newick_str = path_or_str
    else:
        with open(path_or_str) as f:
            newick_str = f.read().strip()

    try:
        return Tree.from_newick(newick_str)
    except ValueError as e:
        raise ValueError(f"Failed to parse tree: {e}") from e


def estimate_parameters(
    model,
    alignment: Union[str, Path, Alignment, SitePattern],
    tree: Optional[Union[str, Path, Tree]] = None,
    max_iterations: int = 100,
    verbose: bool = False,
) -> EstimationResult:
    """
    Estimate the free parameters of a substitution model.

    Parameters
    ----------
    model : SubstitutionModel
        Model to fit; updated in place with the estimates and their
        standard errors
    alignment : str, Path, Alignment or SitePattern
        Nucleotide alignment (FASTA or PHYLIP when given as a path)
    tree : str, Path or Tree, optional
        Fixed tree (Newick string or file). Without one, a neighbor-joining
        tree is rebuilt from model distances in every round.
    max_iterations : int, default=100
        Cap on outer estimation rounds
    verbose : bool, default=False
        Print progress

    Returns
    -------
    EstimationResult

    Raises
    ------
    EstimationError
        If the estimation does not converge within `max_iterations` rounds

    Examples
    --------
    >>> from substml import HKY, GammaRates, estimate_parameters
    >>> result = estimate_parameters(HKY(rate_distribution=GammaRates()), "data.fasta")
    >>> print(result.summary())
    """
    site_pattern = _load_site_pattern(alignment)
    estimator = ParameterEstimator(
        site_pattern, model, max_iterations=max_iterations, verbose=verbose
    )

    if tree is None:
        params = estimator.estimate()
    else:
        params = estimator.estimate_from_tree(_load_tree(tree).copy())

    return EstimationResult(
        model_name=type(model).__name__,
        parameter_names=model.parameter_names,
        parameters=params,
        standard_errors=estimator.standard_errors,
        lnL=estimator.log_likelihood,
        tree=estimator.tree.tree,
        n_iterations=estimator.n_iterations,
    )


def simulate_alignment(
    model,
    tree: Union[str, Path, Tree],
    sequence_length: int,
    seed: Optional[int] = None,
    stochastic_distribution: bool = False,
) -> Alignment:
    """
    Simulate a nucleotide alignment on a tree.

    Parameters
    ----------
    model : SubstitutionModel
        Model with the parameter values to simulate under
    tree : str, Path or Tree
        Tree with branch lengths
    sequence_length : int
        Number of sites
    seed : int, optional
        Random seed for reproducibility
    stochastic_distribution : bool, default=False
        Sample site rate categories instead of assigning them in proportion

    Returns
    -------
    Alignment
        Tip sequences

    Examples
    --------
    >>> aln = simulate_alignment(HKY(kappa=4.0), "((a:0.1,b:0.1):0.05,c:0.2);", 1000, seed=42)
    """
    simulator = SequenceSimulator(
        model, sequence_length, seed=seed, stochastic_distribution=stochastic_distribution
    )
    return TreeSimulator(_load_tree(tree), simulator).simulate_alignment()


def parametric_bootstrap(
    model,
    tree: Union[str, Path, Tree],
    sequence_length: int,
    n_replicates: int,
    seed: Optional[int] = None,
    max_iterations: int = 100,
) -> np.ndarray:
    """
    Parametric bootstrap of the parameter estimates.

    Replicate alignments are simulated under `model` (its current parameter
    values) on `tree`, and each is refitted on the same tree with a fresh
    copy of the model. The caller's model is left untouched.

    Parameters
    ----------
    model : SubstitutionModel
        Fitted model
    tree : str, Path or Tree
        Tree with branch lengths
    sequence_length : int
        Sites per replicate
    n_replicates : int
        Number of replicates
    seed : int, optional
        Random seed for reproducibility
    max_iterations : int, default=100
        Cap on outer estimation rounds per replicate

    Returns
    -------
    np.ndarray, shape (n_replicates, n_parameters)
        Estimates for every replicate
    """
    if n_replicates < 1:
        raise ValueError(f"n_replicates must be positive, got {n_replicates}")

    tree = _load_tree(tree)
    rng = np.random.default_rng(seed)
    simulator = SequenceSimulator(copy.deepcopy(model), sequence_length, rng=rng)
    tree_simulator = TreeSimulator(tree, simulator)

    estimates = np.empty((n_replicates, model.n_parameters))
    for i in range(n_replicates):
        replicate = SitePattern.from_alignment(tree_simulator.simulate_alignment())
        estimator = ParameterEstimator(
            replicate, copy.deepcopy(model), max_iterations=max_iterations
        )
        estimates[i] = estimator.estimate_from_tree(tree.copy())

    return estimates
