# File:                 weightfunction.py
# Creation date:        2026-10-19
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Weighted languages: common interface and automaton representation
#
r"""
A weighted language (or weight function) assigns a non negative weight to each sequence over an alphabet. Two representations share the interface :class:`WeightFunction`: a sparse one, based on a dictionary from sequences to weights (see :mod:`.dictionary`), and a general one, based on a weighted automaton (:class:`AutomatonWeightFunction`). Generic algorithms depend only on the interface.
"""

import logging; logger = logging.getLogger(__name__)
from abc import ABC, abstractmethod
from typing import Optional, Iterable, Iterator, Hashable, Union, Mapping
from numpy import ndarray, exp, log, isnan, isinf
from scipy.sparse import csr_matrix
from .core import WFSA, Builder, log_similarity
from .weight import Weight
from .sequence import SequenceManipulator, StringManipulator, ListManipulator, Discrete, DiscreteChar
from .util import seterr_c, EnumerationCountError

__all__ = 'WeightFunction', 'AutomatonWeightFunction', 'StringAutomatonWeightFunction', 'ListAutomatonWeightFunction'

Pairs = Union[Mapping[Hashable,Weight],Iterable[tuple[Hashable,Weight]]]

#===============================================================================
class WeightFunction (ABC):
  r"""
Base class of weight functions. Instances are immutable: all the operations return new instances (or the instance itself when the result is provably unchanged). The sequences are handled through the class attribute :attr:`manipulator`, and their elements are lifted into distributions of class :attr:`element_distribution`.

Methods:
  """
#===============================================================================

  manipulator: SequenceManipulator
  r"""The strategy used to handle sequences"""
  element_distribution: type = Discrete
  r"""The class of element distributions, which must provide a classmethod ``point``"""
  max_count: int = 1000000
  r"""Default maximum count for support enumeration"""

#-------------------------------------------------------------------------------
# Factories
#-------------------------------------------------------------------------------

  @classmethod
  @abstractmethod
  def from_weights(cls,pairs:Pairs):
    r"""Returns the weight function from a collection of (sequence, weight) pairs. Weights of repeated sequences are summed."""
  @classmethod
  @abstractmethod
  def from_distinct_weights(cls,pairs:Pairs):
    r"""Same as :meth:`from_weights`, but the caller asserts that no sequence is repeated."""
  @classmethod
  def from_point(cls,seq:Hashable):
    r"""Returns the weight function concentrated on *seq*, with weight one."""
    return cls.from_distinct_weights(((seq,Weight.one()),))
  @classmethod
  def from_values(cls,pairs):
    r"""Same as :meth:`from_weights` with weights given as linear values."""
    return cls.from_weights((k,Weight.from_value(v)) for k,v in items(pairs))
  @classmethod
  def from_distinct_values(cls,pairs):
    r"""Same as :meth:`from_distinct_weights` with weights given as linear values."""
    return cls.from_distinct_weights((k,Weight.from_value(v)) for k,v in items(pairs))

#-------------------------------------------------------------------------------
# Structure
#-------------------------------------------------------------------------------

  @property
  @abstractmethod
  def point(self)->Hashable: ...
  @property
  @abstractmethod
  def is_point_mass(self)->bool: ...
  @abstractmethod
  def is_zero(self)->bool: ...
  @property
  @abstractmethod
  def uses_automaton_representation(self)->bool: ...
  @property
  def uses_groups(self)->bool: return False
  @abstractmethod
  def as_automaton(self)->WFSA: ...
  @abstractmethod
  def support(self,max_count:int)->list:
    r"""Returns the list of sequences in the support, raising :class:`EnumerationCountError` beyond *max_count*."""
  @abstractmethod
  def normalize_structure(self): ...

  def get_groups(self)->dict: return {}
  def has_group(self,group:int)->bool: return False
  @staticmethod
  def check_group(group:int):
    if group!=0: raise ValueError(f'Groups are not supported: {group}')
  def check_sequences(self,other:'WeightFunction'):
    if type(other.manipulator) is not type(self.manipulator):
      raise TypeError(f'Incompatible sequence types: {self.__class__.__name__} and {other.__class__.__name__}')

#-------------------------------------------------------------------------------
  def enumerate_support(self,max_count:Optional[int]=None,try_determinize:bool=True)->list:
    r"""
Returns the sequences of the support of this weight function.

:param max_count: maximum number of sequences (default: :attr:`max_count`)
:param try_determinize: ignored, for interface compatibility
:raises EnumerationCountError: if the support has more than *max_count* sequences
    """
#-------------------------------------------------------------------------------
    return self.support(self.max_count if max_count is None else max_count)

#-------------------------------------------------------------------------------
  def try_enumerate_support(self,max_count:Optional[int]=None,try_determinize:bool=True)->tuple[bool,Optional[list]]:
    r"""
Same as :meth:`enumerate_support`, but returns a pair of a success flag and the support (:const:`None` on failure) instead of raising an exception.
    """
#-------------------------------------------------------------------------------
    try: return True,self.enumerate_support(max_count,try_determinize)
    except EnumerationCountError: return False,None

#-------------------------------------------------------------------------------
# Normalisation
#-------------------------------------------------------------------------------

  @abstractmethod
  def get_log_normalizer(self)->float: ...

#-------------------------------------------------------------------------------
  def try_normalize_values(self)->tuple[bool,'WeightFunction',float]:
    r"""
Attempts to normalise this weight function so that its total weight is one.

:returns: a triple of a success flag, the normalised weight function (this one if unchanged or on failure) and the log normaliser
    """
#-------------------------------------------------------------------------------
    z = self.get_log_normalizer()
    if isnan(z) or isinf(z):
      logger.info('Normalisation failed: log normaliser %s',z)
      return False,self,z
    if z==0.: return True,self,z
    return True,self.scale_log(-z),z

#-------------------------------------------------------------------------------
# Algebra
#-------------------------------------------------------------------------------

  @abstractmethod
  def scale_log(self,logscale:float): ...
  @abstractmethod
  def sum(self,other): ...
  @abstractmethod
  def sum_log(self,logweight1:float,logweight2:float,other): ...
  @abstractmethod
  def product(self,other): ...
  @abstractmethod
  def append(self,x,group:int=0): ...
  @abstractmethod
  def get_log_value(self,seq:Hashable)->float: ...
  @abstractmethod
  def enumerate_paths(self)->Iterator[tuple[list,float]]: ...
  @abstractmethod
  def repeat(self,min_times:int=1,max_times:Optional[int]=None): ...

#-------------------------------------------------------------------------------
  def weighted_sum(self,weight1:float,weight2:float,other):
    r"""
Returns the mixture of this weight function and *other* with non negative linear weights *weight1* and *weight2*.
    """
#-------------------------------------------------------------------------------
    if not weight1>=0: raise ValueError(f'Negative weights are not supported: weight1={weight1}')
    if not weight2>=0: raise ValueError(f'Negative weights are not supported: weight2={weight2}')
    with seterr_c(divide='ignore'): return self.sum_log(float(log(weight1)),float(log(weight2)),other)

#-------------------------------------------------------------------------------
  def max_diff(self,other)->float:
    r"""
Returns a dissimilarity between this weight function and *other*, computed on their automaton representations by :func:`.log_similarity`.
    """
#-------------------------------------------------------------------------------
    self.check_sequences(other)
    return float(exp(log_similarity(self.as_automaton(),other.as_automaton())))

  def __add__(self,other):
    if not isinstance(other,WeightFunction): return NotImplemented
    return self.sum(other)
  def __matmul__(self,other):
    if not isinstance(other,WeightFunction): return NotImplemented
    return self.product(other)

#===============================================================================
class AutomatonWeightFunction (WeightFunction):
  r"""
An instance of this class is a weight function represented by a weighted automaton. Unlike dictionary weight functions, it can represent infinite supports, hence supports repetition.

:param automaton: the automaton
  """
#===============================================================================

  sparse: bool = True
  r"""Whether automata built by the factories use sparse matrices"""
  dictionary_type: type
  r"""The dictionary weight function class with the same sequences (set in :mod:`.dictionary`)"""

  def __init__(self,automaton:WFSA):
    if not isinstance(automaton,WFSA): raise TypeError(f'Expected a WFSA, found: {automaton.__class__}')
    self.automaton = automaton

  @classmethod
  def from_weights(cls,pairs): return cls(sequences_automaton(pairs,cls.manipulator,sparse=cls.sparse))
  from_distinct_weights = from_weights

  def coerce(self,other)->WFSA:
    if not isinstance(other,WeightFunction): raise TypeError(f'Expected a weight function, found: {other.__class__}')
    self.check_sequences(other)
    return other.as_automaton()

  @property
  def point(self):
    ok,s = self.try_enumerate_support(1)
    if not ok or len(s)!=1: raise ValueError('This weight function is zero everywhere or is non-zero on more than one sequence.')
    return s[0]
  @property
  def is_point_mass(self)->bool:
    ok,s = self.try_enumerate_support(1)
    return ok and len(s)==1
  def is_zero(self)->bool:
    a = self.automaton.trim()
    return isinf(a.logscale) or not a.start.any()
  @property
  def uses_automaton_representation(self)->bool: return True
  def as_automaton(self)->WFSA: return self.automaton

  def support(self,max_count):
    return [self.manipulator.from_elements(p) for p,_ in self.automaton.support(max_count)]

  def normalize_structure(self):
    a = self.automaton.trim()
    return self if a is self.automaton else self.__class__(a)

  def get_log_normalizer(self): return self.automaton.log_normaliser()
  def get_log_value(self,seq): return self.automaton.logvalue(self.manipulator.elements(seq))

  def scale_log(self,logscale): return self.__class__(self.automaton.scale_log(logscale))
  def sum(self,other): return self.__class__(self.automaton+self.coerce(other))
  def sum_log(self,logweight1,logweight2,other):
    return self.__class__(self.automaton.scale_log(logweight1)+self.coerce(other).scale_log(logweight2))
  def product(self,other): return self.__class__(self.automaton@self.coerce(other))
  def repeat(self,min_times=1,max_times=None): return self.__class__(self.automaton.repeat(min_times,max_times))

#-------------------------------------------------------------------------------
  def append(self,x,group=0):
    r"""
Returns the concatenation of this weight function with *x*, either a weight function or a single sequence.
    """
#-------------------------------------------------------------------------------
    self.check_group(group)
    if not isinstance(x,WeightFunction): x = self.from_point(x)
    return self.__class__(self.automaton.concat(self.coerce(x)))

#-------------------------------------------------------------------------------
  def enumerate_paths(self):
    r"""
Returns, for each sequence of the (finite) support, the list of point distributions of its elements and its log weight.
    """
#-------------------------------------------------------------------------------
    point = self.element_distribution.point
    for p,w in self.automaton.support(self.max_count):
      yield [point(c) for c in p],w

  def to_dictionary(self,max_count:Optional[int]=None):
    r"""Returns the dictionary representation of this weight function, if its support is finite and has at most *max_count* sequences."""
    L = self.automaton.support(self.max_count if max_count is None else max_count)
    return self.dictionary_type.from_distinct_weights((self.manipulator.from_elements(p),Weight(w)) for p,w in L)

  def __repr__(self): return f'{self.__class__.__name__}({self.automaton!r})'

#===============================================================================
class StringAutomatonWeightFunction (AutomatonWeightFunction):
  r"""Automaton weight function over strings."""
#===============================================================================
  manipulator = StringManipulator()
  element_distribution = DiscreteChar

#===============================================================================
class ListAutomatonWeightFunction (AutomatonWeightFunction):
  r"""Automaton weight function over sequences of hashable elements, stored as tuples."""
#===============================================================================
  manipulator = ListManipulator()
  element_distribution = Discrete

#===============================================================================
# Miscelanous
#===============================================================================

def items(pairs:Pairs)->Iterable[tuple[Hashable,Weight]]:
  return pairs.items() if isinstance(pairs,Mapping) else pairs

#-------------------------------------------------------------------------------
def sequences_automaton(pairs:Pairs,manipulator:SequenceManipulator,sparse:bool=True)->WFSA:
  r"""
Returns an automaton assigning to each sequence the (sum of the) weight(s) given in *pairs*. Each pair with non null weight yields a branch from the start state: an epsilon transition, followed by a linear chain of transitions encoding the sequence, ending in a state with a final weight. Branch weights are given relative to the maximal weight, which becomes the log scale of the automaton, and each relative weight is split into equal log factors on the epsilon transition, the chain transitions and the final weight. Since evaluation normalises after each transition, a sequence of length :math:`L` is represented as long as its weight is within about :math:`370(L+2)` nats of the maximum.
  """
#-------------------------------------------------------------------------------
  L = [(k,w) for k,w in items(pairs) if not w.is_zero]
  mtype = csr_matrix if sparse else ndarray
  if not L: return WFSA.empty(mtype)
  m = max(w.logvalue for _,w in L)
  logger.debug('Building automaton for %s sequences, log scale %s',len(L),m)
  builder = Builder()
  for k,w in L:
    elements = list(manipulator.elements(k))
    # the relative weight is spread evenly over the epsilon transition, the chain and the end weight
    x = float(exp((w.logvalue-m)/(len(elements)+2)))
    if not x: logger.warning('Weight out of range relative to the maximum, dropped: %s',w.logvalue-m)
    s = builder.add_state()
    end = builder.add_transitions_for_sequence(s,elements,x)
    builder.set_end_weight(end,x)
    builder.add_epsilon_transition(builder.start,s,x)
  return builder.get_automaton(sparse=sparse,logscale=m)
