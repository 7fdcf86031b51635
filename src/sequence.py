# File:                 sequence.py
# Creation date:        2026-10-19
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Sequence manipulation strategies and element distributions
#

import logging; logger = logging.getLogger(__name__)
from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Iterable, Sequence
from numpy import ndarray, array, allclose, log, inf
from .util import seterr_c

__all__ = 'SequenceManipulator', 'StringManipulator', 'ListManipulator', 'Discrete', 'DiscreteChar'

#===============================================================================
class SequenceManipulator (ABC):
  r"""
Instances of this class specify how the sequences of a given type are handled: how they are turned into hashable keys (key equality is the sequence equality), how they are concatenated and how they are decomposed into elements and rebuilt from them.
  """
#===============================================================================

  @abstractmethod
  def normalise(self,seq)->Hashable: ...
  @abstractmethod
  def from_elements(self,elements:Iterable)->Hashable: ...
  def concat(self,seq1,seq2)->Hashable: return self.normalise(seq1)+self.normalise(seq2)
  def elements(self,seq)->Iterable: return iter(self.normalise(seq))

#===============================================================================
class StringManipulator (SequenceManipulator):
  r"""Sequences are strings, elements are characters."""
#===============================================================================
  def normalise(self,seq):
    if not isinstance(seq,str): raise TypeError(f'Expected a string, found: {seq.__class__}')
    return seq
  def from_elements(self,elements): return ''.join(elements)

#===============================================================================
class ListManipulator (SequenceManipulator):
  r"""
Sequences are arbitrary sequences of hashable elements, normalised by *factory*.

:param factory: the hashable sequence type used as key
  """
#===============================================================================
  def __init__(self,factory:Callable[[Iterable],Sequence]=tuple): self.factory = factory
  def normalise(self,seq): return seq if type(seq) is self.factory else self.factory(seq)
  def from_elements(self,elements): return self.factory(elements)

#===============================================================================
class Discrete:
  r"""
An instance of this class is a discrete distribution over a finite set of hashable elements.

:param support: the elements with non null probability
:param probs: the probabilities of the elements of *support*, in the same order
  """
#===============================================================================

  support: tuple
  probs: ndarray

  def __init__(self,support:Sequence[Hashable],probs:Sequence[float],check:bool=True):
    support,probs = tuple(support),array(probs,dtype=float)
    if check:
      if len(support)!=len(probs): raise ValueError('Support and probabilities must have the same length')
      if len(set(support))!=len(support): raise ValueError('Support elements must be distinct')
      if (probs<0).any(): raise ValueError('Negative probability')
      if not allclose(probs.sum(),1.): raise ValueError('Probabilities must sum to 1')
    self.support,self.probs = support,probs

#-------------------------------------------------------------------------------
  @classmethod
  def point(cls,x:Hashable):
    r"""
Returns the distribution concentrated on element *x*.
    """
#-------------------------------------------------------------------------------
    return cls((x,),(1.,))

  @property
  def is_point_mass(self)->bool: return len(self.support)==1
  @property
  def point_value(self)->Any:
    if not self.is_point_mass: raise ValueError('Distribution is not a point mass')
    return self.support[0]

  def logvalue(self,x:Hashable)->float:
    try: p = self.probs[self.support.index(x)]
    except ValueError: return -inf
    with seterr_c(divide='ignore'): return float(log(p))

  def __eq__(self,other):
    if not isinstance(other,Discrete): return NotImplemented
    return dict(zip(self.support,self.probs))==dict(zip(other.support,other.probs))
  def __hash__(self): return hash(frozenset(self.support))
  def __repr__(self): return f'{self.__class__.__name__}({dict(zip(self.support,self.probs.tolist()))})'

#===============================================================================
class DiscreteChar (Discrete):
  r"""
A discrete distribution over characters.
  """
#===============================================================================
  def __init__(self,support,probs,check=True):
    if check and not all(isinstance(c,str) and len(c)==1 for c in support): raise ValueError('Support elements must be characters')
    super().__init__(support,probs,check)
