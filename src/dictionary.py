# File:                 dictionary.py
# Creation date:        2026-10-19
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Sparse weighted languages represented by dictionaries
#
r"""
:mod:`WLang.dictionary` --- Dictionary weight functions
=======================================================

This module provides a sparse representation of weighted languages with finite support, as a dictionary from sequences to weights. It implements the same interface as the automaton representation, into which it converts without approximation when an operation requires it.

Available types and functions
-----------------------------
"""

import logging; logger = logging.getLogger(__name__)
from types import MappingProxyType
from itertools import chain
from typing import Optional, Hashable, Iterable, Mapping
from numpy import exp, log1p
from .core import WFSA
from .weight import Weight
from .sequence import StringManipulator, ListManipulator, Discrete, DiscreteChar
from .util import seterr_c, EnumerationCountError
from .weightfunction import WeightFunction, AutomatonWeightFunction, StringAutomatonWeightFunction, ListAutomatonWeightFunction, sequences_automaton, items, Pairs

__all__ = 'DictionaryWeightFunction', 'StringDictionaryWeightFunction', 'ListDictionaryWeightFunction'

#===============================================================================
class DictionaryWeightFunction (WeightFunction):
  r"""
An instance of this class is a weight function with finite support, represented as a dictionary from sequences to weights. Instances should be created by the factory class methods, never modified. Entries with null weight are kept until :meth:`normalize_structure` is invoked. Concrete subclasses specify the class attributes :attr:`manipulator`, :attr:`element_distribution` and :attr:`automaton_type`, and may override the two hooks :meth:`_set_weights` and :meth:`_set_distinct_weights` to change the backing store.

Methods:
  """
#===============================================================================

  automaton_type: type = AutomatonWeightFunction
  r"""The automaton weight function class with the same sequences"""
  check_distinct: bool = False
  r"""Whether :meth:`from_distinct_weights` checks that sequences are not repeated (debug mode)"""

  def __init__(self): self._dictionary = MappingProxyType({})

#-------------------------------------------------------------------------------
# Factories
#-------------------------------------------------------------------------------

#-------------------------------------------------------------------------------
  @classmethod
  def from_weights(cls,pairs:Pairs):
    r"""
Returns a weight function from the (sequence, weight) pairs in *pairs* (a mapping or an iterable of pairs). If the same sequence occurs in multiple pairs, its weights are summed.
    """
#-------------------------------------------------------------------------------
    result = cls()
    result._set_weights(items(pairs))
    return result

#-------------------------------------------------------------------------------
  @classmethod
  def from_distinct_weights(cls,pairs:Pairs):
    r"""
Returns a weight function from the (sequence, weight) pairs in *pairs* (a mapping or an iterable of pairs). The sequences are expected to be distinct: this is not checked (unless :attr:`check_distinct` is set), and if the same sequence occurs in multiple pairs, only the last one is kept.
    """
#-------------------------------------------------------------------------------
    result = cls()
    result._set_distinct_weights(items(pairs))
    return result

#-------------------------------------------------------------------------------
  def _set_weights(self,pairs:Iterable[tuple[Hashable,Weight]]):
    r"""
Replaces the backing dictionary by one filled from *pairs*, summing the weights of repeated sequences. Should only be called in factory methods.
    """
#-------------------------------------------------------------------------------
    self._dictionary = MappingProxyType(self.fill_dictionary({},pairs))

#-------------------------------------------------------------------------------
  def _set_distinct_weights(self,pairs:Iterable[tuple[Hashable,Weight]]):
    r"""
Replaces the backing dictionary by one filled from *pairs*, asserted distinct. Should only be called in factory methods.
    """
#-------------------------------------------------------------------------------
    self._dictionary = MappingProxyType(self.distinct_dictionary(pairs))

#-------------------------------------------------------------------------------
  @classmethod
  def fill_dictionary(cls,D:dict,pairs:Iterable[tuple[Hashable,Weight]])->dict:
    r"""
Fills dictionary *D* with *pairs*, summing the weights of repeated sequences, and returns it.
    """
#-------------------------------------------------------------------------------
    normalise = cls.manipulator.normalise
    for k,w in pairs:
      k = normalise(k)
      w_ = D.get(k)
      D[k] = w if w_ is None else w_+w
    return D

#-------------------------------------------------------------------------------
  @classmethod
  def distinct_dictionary(cls,pairs:Iterable[tuple[Hashable,Weight]])->dict:
#-------------------------------------------------------------------------------
    normalise = cls.manipulator.normalise
    if cls.check_distinct:
      logger.debug('Checking distinct sequences in %s',cls.__name__)
      pairs = list(pairs)
      D = dict((normalise(k),w) for k,w in pairs)
      if len(D)!=len(pairs):
        raise ValueError(f'Repeated sequences in distinct weights: {len(pairs)-len(D)}')
      return D
    return dict((normalise(k),w) for k,w in pairs)

#-------------------------------------------------------------------------------
# Structure
#-------------------------------------------------------------------------------

  @property
  def dictionary(self)->Mapping[Hashable,Weight]:
    r"""Read-only view of the backing dictionary"""
    return self._dictionary

  @property
  def point(self)->Hashable:
    if len(self._dictionary)!=1: raise ValueError('This weight function is zero everywhere or is non-zero on more than one sequence.')
    k, = self._dictionary
    return k

  @property
  def is_point_mass(self)->bool: return len(self._dictionary)==1
  def is_zero(self)->bool: return all(w.is_zero for w in self._dictionary.values())
  @property
  def uses_automaton_representation(self)->bool: return False

#-------------------------------------------------------------------------------
  def as_automaton(self,sparse:Optional[bool]=None)->WFSA:
    r"""
Returns an automaton with the same weights as this weight function: one branch per entry with non null weight, reached from the start state by an epsilon transition. The weight of the entry is split over the transitions and the final weight of its branch (see :func:`.sequences_automaton`).

:param sparse: whether to use sparse matrices (default as in :attr:`automaton_type`)
    """
#-------------------------------------------------------------------------------
    if sparse is None: sparse = self.automaton_type.sparse
    return sequences_automaton(self._dictionary,self.manipulator,sparse=sparse)

  def to_automaton_function(self)->AutomatonWeightFunction:
    r"""Returns the automaton representation of this weight function."""
    return self.automaton_type(self.as_automaton())

  def support(self,max_count):
    if max_count<len(self._dictionary): raise EnumerationCountError(max_count)
    return list(self._dictionary)

#-------------------------------------------------------------------------------
  def normalize_structure(self):
    r"""
Returns this weight function with the entries of null weight removed (itself if there are none).
    """
#-------------------------------------------------------------------------------
    if any(w.is_zero for w in self._dictionary.values()):
      return self.from_weights((k,w) for k,w in self._dictionary.items() if not w.is_zero)
    return self

#-------------------------------------------------------------------------------
# Normalisation
#-------------------------------------------------------------------------------

  def get_log_normalizer(self)->float:
    if not self._dictionary: return float('-inf')
    return Weight.sum(self._dictionary.values()).logvalue

#-------------------------------------------------------------------------------
# Algebra
#-------------------------------------------------------------------------------

  def coerce(self,other)->Mapping[Hashable,Weight]:
    if not isinstance(other,DictionaryWeightFunction): raise TypeError(f'Expected a dictionary weight function, found: {other.__class__}')
    self.check_sequences(other)
    return other._dictionary

  def scale_log(self,logscale:float):
    scale = Weight.from_logvalue(logscale)
    return self.from_distinct_weights((k,w*scale) for k,w in self._dictionary.items())

  def sum(self,other):
    return self.from_weights(chain(self._dictionary.items(),self.coerce(other).items()))

  def sum_log(self,logweight1:float,logweight2:float,other):
    scale1,scale2 = Weight.from_logvalue(logweight1),Weight.from_logvalue(logweight2)
    return self.from_weights(chain(
      ((k,w*scale1) for k,w in self._dictionary.items()),
      ((k,w*scale2) for k,w in self.coerce(other).items()),
    ))

#-------------------------------------------------------------------------------
  def product(self,other):
    r"""
Returns the pointwise product of this weight function and *other*: its support is the intersection of the supports. The iteration runs over the smaller of the two dictionaries.
    """
#-------------------------------------------------------------------------------
    D1,D2 = self._dictionary,self.coerce(other)
    if len(D1)>len(D2): D1,D2 = D2,D1
    def prod():
      for k,w in D1.items():
        w2 = D2.get(k)
        if w2 is not None: yield k,w*w2
    return self.from_distinct_weights(list(prod()))

#-------------------------------------------------------------------------------
  def append(self,x,group:int=0):
    r"""
Returns the concatenation of this weight function with *x*, either a single sequence (appended to each sequence of this weight function) or a dictionary weight function (all the pairwise concatenations, with product weights).

:param group: must be 0, groups are not supported
    """
#-------------------------------------------------------------------------------
    self.check_group(group)
    concat = self.manipulator.concat
    if isinstance(x,WeightFunction):
      D = self.coerce(x)
      return self.from_weights((concat(k1,k2),w1*w2) for k1,w1 in self._dictionary.items() for k2,w2 in D.items())
    return self.from_distinct_weights((concat(k,x),w) for k,w in self._dictionary.items())

#-------------------------------------------------------------------------------
  def max_diff(self,other)->float:
    r"""
Returns the same dissimilarity as :meth:`WeightFunction.max_diff`, computed directly on the dictionaries when *other* is also a dictionary weight function, in time linear in the size of the supports.
    """
#-------------------------------------------------------------------------------
    if not isinstance(other,DictionaryWeightFunction): return super().max_diff(other)
    D1,D2 = self._dictionary,self.coerce(other)
    zero = Weight.zero()
    def sqdiff(k):
      l1,l2 = sorted((D1.get(k,zero).logvalue,D2.get(k,zero).logvalue))
      if l1==l2: return zero
      with seterr_c(divide='ignore'): return Weight(2*(l2+log1p(-exp(l1-l2))))
    norm = Weight.sum(w*w for w in chain(D1.values(),D2.values()))
    if norm.is_zero: return 0.
    diff = Weight.sum(sqdiff(k) for k in chain(D1,(k for k in D2 if k not in D1)))
    return float(exp(diff.logvalue-norm.logvalue))

  def get_log_value(self,seq:Hashable)->float:
    w = self._dictionary.get(self.manipulator.normalise(seq))
    return float('-inf') if w is None else w.logvalue

#-------------------------------------------------------------------------------
  def enumerate_paths(self):
    r"""
Returns, for each entry, the list of point distributions of the elements of its sequence and its log weight.
    """
#-------------------------------------------------------------------------------
    point = self.element_distribution.point
    for k,w in self._dictionary.items():
      yield [point(c) for c in self.manipulator.elements(k)],w.logvalue

  def repeat(self,min_times:int=1,max_times:Optional[int]=None):
    raise NotImplementedError('Repetition is not supported by dictionary weight functions; use the automaton representation')

  def __len__(self): return len(self._dictionary)
  def __reduce__(self): return self.__class__.from_weights,(list(self._dictionary.items()),)
  def __repr__(self): return f'{self.__class__.__name__}({dict(self._dictionary)!r})'

#===============================================================================
class StringDictionaryWeightFunction (DictionaryWeightFunction):
  r"""
Dictionary weight function over strings. The backing dictionary is kept sorted by sequence.
  """
#===============================================================================

  manipulator = StringManipulator()
  element_distribution = DiscreteChar
  automaton_type = StringAutomatonWeightFunction

  def _set_weights(self,pairs):
    self._dictionary = MappingProxyType(dict(sorted(self.fill_dictionary({},pairs).items())))
  def _set_distinct_weights(self,pairs):
    self._dictionary = MappingProxyType(dict(sorted(self.distinct_dictionary(pairs).items())))

#===============================================================================
class ListDictionaryWeightFunction (DictionaryWeightFunction):
  r"""
Dictionary weight function over sequences of hashable elements. Sequences are stored as tuples, in insertion order.
  """
#===============================================================================

  manipulator = ListManipulator()
  element_distribution = Discrete
  automaton_type = ListAutomatonWeightFunction

StringAutomatonWeightFunction.dictionary_type = StringDictionaryWeightFunction
ListAutomatonWeightFunction.dictionary_type = ListDictionaryWeightFunction
