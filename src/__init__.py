# File:                 __init__.py
# Creation date:        2019-11-14
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Weighted languages in sparse and automaton representations
#
r"""
This package provides a set of tools for weighted languages, i.e. assignments of non negative weights to sequences. All weights are handled in log domain (:class:`.Weight`). Two representations share a common interface (:class:`.WeightFunction`):

* a sparse representation, for languages with finite support, as a dictionary from sequences to weights (:class:`.DictionaryWeightFunction` and its string and list specialisations)
* a general representation as a Weighted Finite State Automaton (:class:`.AutomatonWeightFunction`), based on :class:`.WFSA`, an assignment of a transition matrix to each symbol in an alphabet. Transition matrices are either regular 2D arrays of type :class:`numpy.ndarray` or compressed row sparse matrices of type :class:`scipy.sparse.csr_matrix`.

Any dictionary weight function converts without approximation into an automaton, which is used for the operations the sparse representation does not support (repetition, similarity).

Available types and functions:
------------------------------
:class:`.Weight`, :class:`.WFSA`, :class:`.Builder`, :func:`.log_similarity`, :class:`.WeightFunction`, :class:`.AutomatonWeightFunction`, :class:`.DictionaryWeightFunction`, :class:`.StringDictionaryWeightFunction`, :class:`.ListDictionaryWeightFunction`, :class:`.Discrete`, :class:`.DiscreteChar`
"""

from .util import *
from .weight import *
from .sequence import *
from .core import *
from .weightfunction import *
from .dictionary import *
