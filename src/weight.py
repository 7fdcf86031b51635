# File:                 weight.py
# Creation date:        2026-10-19
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Semiring weights in log domain
#

import logging; logger = logging.getLogger(__name__)
from functools import total_ordering
from typing import Iterable
from numpy import log, exp, logaddexp, inf, isneginf, fromiter
from scipy.special import logsumexp
from .util import seterr_c

__all__ = 'Weight',

#===============================================================================
@total_ordering
class Weight:
  r"""
An instance of this class is a non negative weight, stored as its natural logarithm. Weights form a semiring: multiplication (``*``) adds log values, addition (``+``) is the log-sum-exp of log values. The null weight has log value :math:`-\infty` and is tested exactly, without tolerance. Instances are immutable.

:param logvalue: the log value of the weight
  """
#===============================================================================

  __slots__ = 'logvalue',
  logvalue: float

  def __init__(self,logvalue:float=-inf): object.__setattr__(self,'logvalue',float(logvalue))
  def __setattr__(self,a,v): raise AttributeError(f'{self.__class__.__name__} is immutable')
  def __reduce__(self): return Weight,(self.logvalue,)

#-------------------------------------------------------------------------------
  @classmethod
  def zero(cls)->'Weight': return cls(-inf)
  @classmethod
  def one(cls)->'Weight': return cls(0.)
  @classmethod
  def from_logvalue(cls,logvalue:float)->'Weight': return cls(logvalue)
#-------------------------------------------------------------------------------

#-------------------------------------------------------------------------------
  @classmethod
  def from_value(cls,value:float)->'Weight':
    r"""
Returns the weight of linear value *value*, which must be non negative.
    """
#-------------------------------------------------------------------------------
    if not value>=0.: raise ValueError(f'Weights must be non negative: {value}')
    with seterr_c(divide='ignore'): return cls(log(value))

#-------------------------------------------------------------------------------
  @classmethod
  def sum(cls,weights:Iterable['Weight'])->'Weight':
    r"""
Returns the semiring sum of *weights*, computed by a numerically stable log-sum-exp (:math:`-\infty` if *weights* is empty).
    """
#-------------------------------------------------------------------------------
    a = fromiter((w.logvalue for w in weights),dtype=float)
    if a.size==0: return cls.zero()
    with seterr_c(divide='ignore'): return cls(logsumexp(a))

  @property
  def value(self)->float: return float(exp(self.logvalue))
  @property
  def is_zero(self)->bool: return bool(isneginf(self.logvalue))

  def __mul__(self,other):
    if not isinstance(other,Weight): return NotImplemented
    return Weight(self.logvalue+other.logvalue) # -inf absorbs
  def __add__(self,other):
    if not isinstance(other,Weight): return NotImplemented
    return Weight(logaddexp(self.logvalue,other.logvalue))
  def __eq__(self,other):
    if not isinstance(other,Weight): return NotImplemented
    return self.logvalue==other.logvalue
  def __lt__(self,other):
    if not isinstance(other,Weight): return NotImplemented
    return self.logvalue<other.logvalue
  def __hash__(self): return hash(self.logvalue)
  def __float__(self): return self.value
  def __repr__(self): return f'Weight(exp({self.logvalue}))'
