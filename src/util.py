# File:                 util.py
# Creation date:        2019-11-14
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Utilities for weighted languages
#

import logging; logger = logging.getLogger(__name__)
from contextlib import contextmanager
from numpy import log, seterr, zeros, amax, ones
from scipy.special import logsumexp
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

__all__ = 'EnumerationCountError',

#===============================================================================
class EnumerationCountError (ValueError):
  r"""
Raised when the enumeration of a support exceeds a caller supplied bound.

:param max_count: the bound which has been exceeded
  """
#===============================================================================
  def __init__(self,max_count:int):
    super().__init__(f'Support enumeration exceeded the maximum count: {max_count}')
    self.max_count = max_count

#===============================================================================
class lmatrix:
  r"""
Matrix in log domain. Support only matrix multiplication on the right.

:param m: copy of this matrix where each row has been normalised
:param b: log-coefficients of the normalisation, as a vector of length :math:`N`, the number of rows of this matrix
:type b: :class:`numpy.ndarray`
:param normalise: the function used for the normalisation
:type normalise: :class:`Callable[[numpy.ndarray],numpy.ndarray]`
  """
#===============================================================================
  def __init__(self,m,b,normalise): self.m,self.b,self.normalise = m,b,normalise
  def __getitem__(self,s): return lmatrix(self.m[s],self.b[s],self.normalise)
  def __setitem__(self,s,v): self.m[s] = v.m; self.b[s] = v.b
  def __matmul__(self,other):
    m = self.m@other
    x = self.normalise(m)
    return lmatrix(m,self.b+log(x),self.normalise)
  def nonzero(self):
    r"""
:returns: whether each row of this matrix has a non null entry
:rtype: :class:`numpy.ndarray`
    """
    return amax(toarray(self.m),axis=1,initial=0.)>0
  def logdot(self,v):
    r"""
:param v: a vector of non negative entries, of length :math:`N`, the number of columns of this matrix
:returns: the logvalues of the product of this matrix by *v*, as a column, summed in log domain so that no product of small entries underflows
:rtype: :class:`numpy.ndarray`
    """
    with seterr_c(divide='ignore',invalid='ignore'):
      return logsumexp(log(toarray(self.m))+log(v)[None,:],axis=1,keepdims=True)+self.b
  def __repr__(self): return f'{self.m}*exp{self.b}'

#-------------------------------------------------------------------------------
def max_normaliser(mtype):
  r"""
Returns the row normalisation function of :class:`lmatrix` for matrices of type *mtype*. Each row is divided by its max (rows which are null are left unchanged) and the vector of divisors is returned.
  """
#-------------------------------------------------------------------------------
  if issubclass(mtype,csr_matrix):
    def max_normalise(m):
      x = ones((m.shape[0],1))
      for i,(k,k_) in enumerate(zip(m.indptr[:-1],m.indptr[1:])):
        xi = amax(m.data[k:k_],initial=0.)
        if xi: x[i] = xi; m.data[k:k_] /= xi
      return x
  else:
    def max_normalise(m):
      x = amax(m,axis=1,keepdims=True)
      x[x==0] = 1; m /= x
      return x
  return max_normalise

#===============================================================================
# Miscelanous
#===============================================================================

@contextmanager
def seterr_c(**ka):
  errconfig = seterr(**ka)
  try: yield
  finally: seterr(**errconfig)

def onehot(n,N,val=1.,**ka):
  a = zeros(N,**ka)
  a[n] = val
  return a

def toarray(a):
  return a.toarray() if hasattr(a,'toarray') else a

def is_acyclic(m):
  r"""Whether the directed graph of the non null entries of square matrix *m* (dense or sparse) has no cycle, self-loops included."""
  if m.diagonal().any(): return False
  n,_ = connected_components(m,directed=True,connection='strong')
  return n==m.shape[0]
