# File:                 core.py
# Creation date:        2019-11-14
# Contributors:         Jean-Marc Andreoli
# Language:             python
# Purpose:              Implementation of Weighted Finite State Automata
#

import logging; logger = logging.getLogger(__name__)
import re
from typing import Optional, Union, Sequence, Hashable, Iterable, Any
from functools import cached_property
from numpy import ndarray, asarray, zeros, empty, eye, count_nonzero, einsum, kron, outer, concatenate, exp, log, inf, isnan, isneginf, nonzero, repeat, tile, amax, logaddexp
from numpy.linalg import solve, eigvals
from scipy.special import logsumexp
from scipy.sparse import csr_matrix, csc_matrix, issparse, eye as speye, vstack as spvstack, kron as spkron, block_diag as spblock_diag
from scipy.sparse.linalg import spsolve
from .util import lmatrix, max_normaliser, seterr_c, onehot, toarray, is_acyclic, EnumerationCountError

__all__ = 'WFSA', 'Builder', 'log_similarity'

#===============================================================================
class WFSA:
#===============================================================================
  r"""
An instance of this class is a Weighted Finite State Automaton, specified as an assignment of a transition matrix to each symbol in an alphabet, together with a start and a final weight vector. The weight of a sequence of symbols is the product of the start vector, the transition matrices of the symbols and the final vector, multiplied by the global factor :math:`\exp(\mathrm{logscale})`. Keeping that factor apart allows weights spanning many orders of magnitude to be represented without underflow.

An additional transition matrix (called a template) can optionally be specified in a WFSA. It is used as the transition matrix of any symbol outside the alphabet. Another optional matrix (called epsilon) holds the transitions which consume no symbol.

WFSA intersection is supported through operator ``@``. It is essentially commutative, except for the state names, hence the choice of ``@`` instead of ``*``: state names of the intersection are composed by joining names from the operands with ``.``. Union is supported through operator ``+``, concatenation through method :meth:`concat`.

Instances are not meant to be modified after creation: all the operations return new instances.

Methods:
  """

  mtype: type
  r"""The common type of all the transition matrices (:class:`numpy.ndarray` or :class:`scipy.sparse.csr_matrix`)"""
  N: int
  r"""The number of states"""
  n: int
  r"""The number of symbols in the alphabet"""
  W: Union[tuple[ndarray,...],tuple[csr_matrix,...]]
  r"""a list of transition (square) matrices with the same shape and type, one for each symbol in the alphabet"""
  template: Optional[Union[ndarray,csr_matrix]]
  r"""a transition (square) matrix of same shape and type as those in :attr:`W`, used for symbols outside the alphabet"""
  epsilon: Optional[Union[ndarray,csr_matrix]]
  r"""a transition (square) matrix of same shape and type as those in :attr:`W`, for transitions consuming no symbol"""
  start: ndarray
  r"""the start weight vector"""
  final: ndarray
  r"""the final weight vector"""
  logscale: float
  r"""the log of the global factor applied to all the weights"""
  symb_names: tuple[Hashable,...]
  r"""the list of symbols (indices in the list of transition matrices)"""
  state_names: tuple[str,...]
  r"""the list of names of the states (indices in each transition matrix)"""

  maxN = 1000
  r"""Size beyond which dense automata trigger a warning"""

#-------------------------------------------------------------------------------
  def __init__(self,*a,**ka):
#-------------------------------------------------------------------------------
    self.init_struct(*a,**ka)
    self.init_type()

#-------------------------------------------------------------------------------
  def init_struct(self,W:Union[Sequence[ndarray],Sequence[csr_matrix]],start:Sequence[float],final:Sequence[float],epsilon:Optional[Union[ndarray,csr_matrix]]=None,template:Optional[Union[ndarray,csr_matrix]]=None,logscale:float=0.,state_names:Optional[Sequence[str]]=None,symb_names:Optional[Sequence[Hashable]]=None,mtype:type=csr_matrix,check:bool=True):
    r"""Called at initialisation with all the arguments of the constructor. Initialises the structure of this WFSA. If *check* is :const:`True`, a number of consistency checks are performed on the arguments (set to :const:`False` if already checked at invocation). Parameter *mtype* is only used when there is no matrix at all to infer the type from."""
#-------------------------------------------------------------------------------
    W = tuple(W)
    start,final = (asarray(a,dtype=float) for a in (start,final))
    N = start.shape[0]
    matrices = [w for w in (*W,template,epsilon) if w is not None]
    if matrices: mtype = csr_matrix if issparse(matrices[0]) else ndarray
    if check:
      if not issubclass(mtype,(ndarray,csr_matrix)): raise ValueError(f'Unsupported matrix type {mtype}')
      if any([bool(issparse(w))!=issubclass(mtype,csr_matrix) for w in matrices]): raise ValueError('Transition matrices must all be of the same type')
      if any([w.shape!=(N,N) for w in matrices]): raise ValueError('Transition matrices must all be of the same square shape, matching the start vector')
      if final.shape!=(N,): raise ValueError('Start and final vectors must have the same length')
      for c,w in enumerate(W):
        if w.shape[0] and w.min()<0.: raise ValueError(f'Negative transition weight in symbol: {c}')
      if template is not None and N and template.min()<0.: raise ValueError('Negative transition weight in template')
      if epsilon is not None and N and epsilon.min()<0.: raise ValueError('Negative transition weight in epsilon')
      if (start<0).any() or (final<0).any(): raise ValueError('Negative start or final weight')
      if isnan(logscale) or logscale==inf: raise ValueError(f'Invalid log scale: {logscale}')
      if state_names is not None and (len(state_names)!=N or not all([isinstance(x,str) for x in state_names])): raise ValueError('State name list must contain strings and match state dimension')
      if symb_names is not None and (len(symb_names)!=len(W) or len(set(symb_names))!=len(W)): raise ValueError('Symbol list must contain distinct symbols and match alphabet length')
      if issubclass(mtype,csr_matrix):
        W = tuple(csr_matrix(w) for w in W)
        if template is not None: template = csr_matrix(template)
        if epsilon is not None: epsilon = csr_matrix(epsilon)
    self.W = W
    self.template = template
    self.epsilon = epsilon
    self.start,self.final = start,final
    self.logscale = float(logscale)
    self.n = len(W)
    self.N = N
    self.mtype = mtype
    self.state_names = self.default_state_names() if state_names is None else tuple(state_names)
    self.symb_names = self.default_symb_names() if symb_names is None else tuple(symb_names)
    self.symb_index = dict((c,i) for i,c in enumerate(self.symb_names))

#-------------------------------------------------------------------------------
  def init_type(self):
    r"""Initialises the types of this WFSA"""
#-------------------------------------------------------------------------------
    # Initialisation of special methods dependent on matrix type
    if issubclass(self.mtype,ndarray):
      if self.N>self.maxN:
        logger.warning('Dense automata with %s states may be inefficient. Use type csr_matrix instead.',self.N)
      def initial(a,size): r = empty((size,a.shape[0])); r[...] = a[None,:]; return r
      product = lambda w1,w2: einsum('ij,kl->ikjl',w1,w2).reshape(2*(w1.shape[0]*w2.shape[0],))
      def block(w1,w2):
        N1,N2 = w1.shape[0],w2.shape[0]
        r = zeros(2*(N1+N2,)); r[:N1,:N1] = w1; r[N1:,N1:] = w2
        return r
      def link(u,v):
        N1,N2 = u.shape[0],v.shape[0]
        r = zeros(2*(N1+N2,)); r[:N1,N1:] = outer(u,v)
        return r
      null = lambda N: zeros((N,N))
      solve_,eye_ = solve,eye
    elif issubclass(self.mtype,csr_matrix):
      def initial(a,size): return csr_matrix(spvstack(size*(csr_matrix(a[None,:]),),format='csr'))
      product = lambda w1,w2: csr_matrix(spkron(w1,w2,format='csr'))
      block = lambda w1,w2: csr_matrix(spblock_diag((w1,w2),format='csr'))
      def link(u,v):
        N1,N2 = u.shape[0],v.shape[0]
        I,J = nonzero(u)[0],nonzero(v)[0]
        data = outer(u[I],v[J]).ravel()
        return csr_matrix((data,(repeat(I,len(J)),N1+tile(J,len(I)))),shape=2*(N1+N2,))
      null = lambda N: csr_matrix((N,N))
      solve_ = lambda A,b: spsolve(csc_matrix(A),csc_matrix(b) if issparse(b) else b)
      eye_ = lambda N: speye(N,format='csr')
    else: raise Exception('Should not happen if matrix type has been properly checked')
    self.product,self.initial,self.block,self.link,self.null = product,initial,block,link,null
    self.solve,self.eye = solve_,eye_
    self.max_normalise = max_normaliser(self.mtype)

#-------------------------------------------------------------------------------
  @classmethod
  def unit(cls,mtype:type=csr_matrix):
    r"""Returns the automaton which assigns weight one to the empty sequence and zero to all the others."""
#-------------------------------------------------------------------------------
    return cls((),start=onehot(0,1),final=onehot(0,1),mtype=mtype)

#-------------------------------------------------------------------------------
  @classmethod
  def empty(cls,mtype:type=csr_matrix):
    r"""Returns the automaton which assigns weight zero to all sequences."""
#-------------------------------------------------------------------------------
    return cls((),start=zeros(1),final=zeros(1),logscale=-inf,mtype=mtype)

#-------------------------------------------------------------------------------
  def replace(self,**ka):
    r"""Returns a copy of this automaton where the attributes specified by *ka* are replaced."""
#-------------------------------------------------------------------------------
    D = dict(W=self.W,start=self.start,final=self.final,epsilon=self.epsilon,template=self.template,logscale=self.logscale,state_names=self.state_names,symb_names=self.symb_names,mtype=self.mtype,check=False)
    D.update(ka)
    return self.__class__(**D)

#-------------------------------------------------------------------------------
  def transition(self,c:Hashable):
    r"""Returns the transition matrix of symbol *c*, possibly the template, or :const:`None`."""
#-------------------------------------------------------------------------------
    i = self.symb_index.get(c)
    return self.template if i is None else self.W[i]

#-------------------------------------------------------------------------------
  @cached_property
  def wbar(self):
    r"""The global transition matrix (sum of the transition matrices of all the symbols)"""
#-------------------------------------------------------------------------------
    wbar = self.null(self.N)
    for w in self.W: wbar = wbar+w
    return wbar

#-------------------------------------------------------------------------------
  def epsremove(self):
    r"""
Returns an automaton equivalent to this one without epsilon transitions. The epsilon closure :math:`(I-E)^{-1}` is folded into the start vector and the transition matrices.
    """
#-------------------------------------------------------------------------------
    if self.epsilon is None: return self
    E = self.epsilon
    # acyclic epsilon transitions: the closure is a finite sum of powers of E, null entries stay exactly null
    if is_acyclic(E):
      C = P = self.eye(self.N)
      while True:
        P = P@E
        if not (P.count_nonzero() if issparse(P) else count_nonzero(P)): break
        C = C+P
    else:
      logger.debug('Cyclic epsilon transitions, solving for the closure: %s states',self.N)
      C = self.solve(self.eye(self.N)-E,self.eye(self.N))
    if issubclass(self.mtype,csr_matrix): C = csr_matrix(C)
    return self.replace(
      W=tuple(w@C for w in self.W),
      start=C.T@self.start,
      template=(None if self.template is None else self.template@C),
      epsilon=None,
    )

#-------------------------------------------------------------------------------
  def trim(self):
    r"""
Returns an automaton equivalent to this one restricted to the states which are both accessible (from a state with non null start weight) and co-accessible (to a state with non null final weight).
    """
#-------------------------------------------------------------------------------
    adj = self.wbar
    for w in (self.template,self.epsilon):
      if w is not None: adj = adj+w
    def reach(q,m):
      while True:
        q_ = q|((m@q.astype(float))>0)
        if (q_==q).all(): return q
        q = q_
    q = reach(self.start>0,adj.T)&reach(self.final>0,adj)
    if q.all(): return self
    if not q.any():
      logger.info('Pruning all states: %s',self.N)
      return self.empty(self.mtype)
    logger.info('Pruning useless states: %s/%s',self.N-q.sum(),self.N)
    sub = lambda w: None if w is None else w[q,:][:,q]
    return self.replace(
      W=tuple(sub(w) for w in self.W),
      template=sub(self.template),
      epsilon=sub(self.epsilon),
      start=self.start[q],final=self.final[q],
      state_names=tuple(s for s,keep in zip(self.state_names,q) if keep),
    )

#-------------------------------------------------------------------------------
  def initialise(self,start:Optional[ndarray]=None,size:int=1)->lmatrix:
    r"""
Returns an initial state-weight assignment as a log-domain matrix.

:param start: an initial state-weight assignment as a vector of length :math:`N`, the number of states in this automaton (default: :attr:`start`)
:param size: number :math:`M` of rows
:return: a matrix of shape :math:`M,N`
    """
#-------------------------------------------------------------------------------
    if start is None: start = self.start
    m = self.initial(start,size)
    b = zeros((size,1))
    return lmatrix(m,b,self.max_normalise)

#-------------------------------------------------------------------------------
  def logvalue(self,elements:Iterable[Hashable])->float:
    r"""
Returns the weight, in log domain, of a sequence of symbols.

:param elements: the symbols of the sequence
    """
#-------------------------------------------------------------------------------
    a = self.epsremove()
    weights = a.initialise()
    for c in elements:
      w = a.transition(c)
      if w is None: return -inf
      weights = weights@w
    return float(weights.logdot(a.final)[0,0])+a.logscale

#-------------------------------------------------------------------------------
  def log_normaliser(self)->float:
    r"""
Returns the total weight, in log domain, of all the sequences over the alphabet of this automaton. Returns :math:`+\infty` if the sum diverges, i.e. when the spectral radius of the global transition matrix is not less than 1, and :math:`-\infty` when all the weights are null. Symbols outside the alphabet (template) are ignored.
    """
#-------------------------------------------------------------------------------
    a = self.trim().epsremove()
    if not a.start.any() or not a.final.any(): return -inf
    wbar = a.wbar
    # the spectral radius of an acyclic transition graph is null
    if not is_acyclic(wbar):
      if a.N>self.maxN: logger.warning('Computing the spectral radius of a large automaton: %s states',a.N)
      if amax(abs(eigvals(toarray(wbar))),initial=0.)>=1.-1e-12: return inf
    z = a.solve(a.eye(a.N)-wbar,a.final)
    total = float(a.start@z)
    if total<=0: return -inf
    return float(log(total))+a.logscale

#-------------------------------------------------------------------------------
  def __matmul__(self,other):
#-------------------------------------------------------------------------------
    if not isinstance(other,WFSA): raise ValueError(f'Unsupported types for @: \'{self.__class__}\' and \'{other.__class__}\'')
    if other.mtype != self.mtype: raise ValueError(f'Inconsistent matrix types for @: \'{self.mtype}\' and \'{other.mtype}\'')
    self_,other = self.epsremove(),other.epsremove()
    product = self.product
    def intersect():
      for cname,w in zip(self_.symb_names,self_.W):
        try: cind = other.symb_index[cname]
        except KeyError:
          if other.template is not None: yield cname,product(w,other.template)
        else: yield cname,product(w,other.W[cind])
      if self_.template is not None:
        for cname,w in zip(other.symb_names,other.W):
          if cname not in self_.symb_index: yield cname,product(self_.template,w)
    template = None
    if self_.template is not None and other.template is not None:
      template = product(self_.template,other.template)
    L = list(intersect())
    symb_names,W = zip(*L) if L else ((),())
    state_names = tuple(f'{s1}.{s2}' for s1 in self_.state_names for s2 in other.state_names)
    return self.__class__(W,start=kron(self_.start,other.start),final=kron(self_.final,other.final),template=template,logscale=self_.logscale+other.logscale,symb_names=symb_names,state_names=state_names,mtype=self.mtype,check=False)

#-------------------------------------------------------------------------------
  def combine(self,other,start:ndarray,final:ndarray,link:Optional[Any]=None,logscale:float=0.):
    r"""
Returns an automaton whose states are the disjoint union of the states of this automaton and *other*, with block diagonal transition matrices over the union of the alphabets. A symbol missing in one operand uses its template if present, otherwise a null matrix. Matrix *link* is added to the epsilon transitions of the result.
    """
#-------------------------------------------------------------------------------
    if not isinstance(other,WFSA): raise ValueError(f'Unsupported type for combination: \'{other.__class__}\'')
    if other.mtype != self.mtype: raise ValueError(f'Inconsistent matrix types: \'{self.mtype}\' and \'{other.mtype}\'')
    def pad(a,w): return a.null(a.N) if w is None else w
    symb_names = self.symb_names+tuple(c for c in other.symb_names if c not in self.symb_index)
    W = tuple(self.block(pad(self,self.transition(c)),pad(other,other.transition(c))) for c in symb_names)
    template = None
    if self.template is not None or other.template is not None:
      template = self.block(pad(self,self.template),pad(other,other.template))
    epsilon = None
    if self.epsilon is not None or other.epsilon is not None:
      epsilon = self.block(pad(self,self.epsilon),pad(other,other.epsilon))
    if link is not None: epsilon = link if epsilon is None else epsilon+link
    state_names = tuple(f'0.{s}' for s in self.state_names)+tuple(f'1.{s}' for s in other.state_names)
    return self.__class__(W,start=start,final=final,epsilon=epsilon,template=template,logscale=logscale,symb_names=symb_names,state_names=state_names,mtype=self.mtype,check=False)

#-------------------------------------------------------------------------------
  def __add__(self,other):
#-------------------------------------------------------------------------------
    if not isinstance(other,WFSA): return NotImplemented
    m = max(self.logscale,other.logscale)
    if isneginf(m): m = 0.
    start = concatenate((self.start*exp(self.logscale-m),other.start*exp(other.logscale-m)))
    final = concatenate((self.final,other.final))
    return self.combine(other,start,final,logscale=m)

#-------------------------------------------------------------------------------
  def concat(self,other:'WFSA')->'WFSA':
    r"""
Returns the concatenation of this automaton and *other*: the weight of a sequence is the sum, over all its splits into a prefix and a suffix, of the product of the weights of the prefix in this automaton and of the suffix in *other*.
    """
#-------------------------------------------------------------------------------
    start = concatenate((self.start,zeros(other.N)))
    final = concatenate((zeros(self.N),other.final))
    return self.combine(other,start,final,link=self.link(self.final,other.start),logscale=self.logscale+other.logscale)

#-------------------------------------------------------------------------------
  def scale_log(self,logscale:float)->'WFSA':
    r"""Returns a copy of this automaton where all the weights are multiplied by :math:`\exp(\mathrm{logscale})`."""
#-------------------------------------------------------------------------------
    return self.replace(logscale=self.logscale+logscale)

#-------------------------------------------------------------------------------
  def star(self)->'WFSA':
    r"""
Returns the Kleene closure of this automaton: the sum of the iterated concatenations of this automaton, including the empty one.
    """
#-------------------------------------------------------------------------------
    # state 0 of the result is the loop state, states of self are shifted by 1
    N = self.N+1
    ext = lambda w: self.block(self.null(1),self.null(self.N) if w is None else w)
    head = self.link(onehot(0,1),self.start*exp(self.logscale))
    back = self.link(onehot(0,1),self.final).T
    epsilon = ext(self.epsilon)+head+back
    if issubclass(self.mtype,csr_matrix): epsilon = csr_matrix(epsilon)
    W = tuple(ext(w) for w in self.W)
    template = None if self.template is None else ext(self.template)
    return self.__class__(W,start=onehot(0,N),final=onehot(0,N),epsilon=epsilon,template=template,symb_names=self.symb_names,state_names=('*',)+self.state_names,mtype=self.mtype,check=False)

#-------------------------------------------------------------------------------
  def repeat(self,min_times:int=1,max_times:Optional[int]=None)->'WFSA':
    r"""
Returns the automaton of the repetitions of this automaton between *min_times* and *max_times* (unbounded if :const:`None`) times.
    """
#-------------------------------------------------------------------------------
    if min_times<0: raise ValueError(f'Negative minimum number of repetitions: {min_times}')
    if max_times is not None and max_times<min_times: raise ValueError(f'Maximum number of repetitions less than minimum: {max_times}<{min_times}')
    unit = self.unit(self.mtype)
    r = unit
    for _ in range(min_times): r = r.concat(self)
    if max_times is None: return r.concat(self.star())
    opt = unit
    for _ in range(max_times-min_times): opt = unit+self.concat(opt)
    return r.concat(opt)

#-------------------------------------------------------------------------------
  def support(self,max_count:int)->list[tuple[tuple,float]]:
    r"""
Returns the list of the sequences with non null weight in this automaton, with their log weights. Sequences are enumerated breadth-first, i.e. by increasing length.

:param max_count: the maximum number of sequences allowed
:raises EnumerationCountError: if there are more than *max_count* sequences (in particular if there are infinitely many)
    """
#-------------------------------------------------------------------------------
    a = self.trim().epsremove()
    if a.template is not None: raise ValueError('Support of an automaton with template cannot be enumerated')
    result = []
    level = [((),a.initialise())] if a.start.any() else []
    while level:
      level_ = []
      for prefix,weights in level:
        v = float(weights.logdot(a.final)[0,0])
        if v>-inf: result.append((prefix,v+a.logscale))
        for c,w in zip(a.symb_names,a.W):
          weights_ = weights@w
          if weights_.nonzero()[0]: level_.append((prefix+(c,),weights_))
      # each live prefix has at least one distinct completion
      if len(result)+len(level_)>max_count: raise EnumerationCountError(max_count)
      level = level_
    return result

#-------------------------------------------------------------------------------
  @classmethod
  def from_str(cls,descr,sparse=False,sep='\n',pat=re.compile(r'(\w*)->(\w*)(?:\s+(\S))?\s+([0-9.eE+-]+)')):
    r"""
Returns a :class:`.WFSA` instance described by parameter *descr*, which must be a string in a simple syntax. Each line is either a transition ``p->q a w``, an epsilon transition ``p->q ε w``, a start weight ``->q w`` or a final weight ``p-> w``. This is a class method and the created instance is of the class from which it is invoked. For example, an automaton for strings of geometric lengths over a singleton alphabet can be specified as:

.. code:: python

   WFSA.from_str('''
     ->O 1.
     O->O a .3
     O-> .7
   ''')
    """
#-------------------------------------------------------------------------------
    def add(x,D):
      if x and x not in D: D[x] = len(D)
    L = []
    for x in descr.strip().split(sep):
      m = pat.fullmatch(x.strip())
      if m is None: raise ValueError(f'Unparsable line: {x!r}')
      sfrom,sto,symb,w = m.groups()
      if not sfrom and not sto: raise ValueError(f'Line with no state: {x!r}')
      if symb is not None and not (sfrom and sto): raise ValueError(f'Start or final weight with a symbol: {x!r}')
      L.append((sfrom,sto,symb,float(w)))
    Dstate,Dsymb = {},{}
    for sfrom,sto,symb,w in L:
      add(sfrom,Dstate); add(sto,Dstate)
      if symb is not None and symb!='ε': add(symb,Dsymb)
    N = len(Dstate)
    W = zeros((len(Dsymb),N,N))
    E,start,final = zeros((N,N)),zeros(N),zeros(N)
    for sfrom,sto,symb,w in L:
      if not sfrom: start[Dstate[sto]] = w
      elif not sto: final[Dstate[sfrom]] = w
      elif symb=='ε': E[Dstate[sfrom],Dstate[sto]] = w
      else: W[Dsymb[symb],Dstate[sfrom],Dstate[sto]] = w
    epsilon = E if E.any() else None
    if sparse:
      W = [csr_matrix(w) for w in W]
      if epsilon is not None: epsilon = csr_matrix(epsilon)
    return cls(tuple(W),start=start,final=final,epsilon=epsilon,state_names=tuple(Dstate),symb_names=tuple(Dsymb),mtype=(csr_matrix if sparse else ndarray))

#-------------------------------------------------------------------------------
  def default_state_names(self)->tuple[str,...]: return tuple(str(n) for n in range(self.N))
  def default_symb_names(self)->tuple[str,...]: return tuple(chr(x+97) for x in range(self.n))
  def __repr__(self): return f'{self.__class__.__name__}<{self.N} states, {self.n} symbols, {self.mtype.__name__}>'
#-------------------------------------------------------------------------------

#===============================================================================
class Builder:
  r"""
Instances of this class incrementally build a :class:`WFSA`. State 0 is the start state (with start weight one); all weights are given in linear domain.
  """
#===============================================================================

  start = 0

  def __init__(self):
    self.N = 1
    self.transitions,self.epsilons,self.final = [],[],{}

  def add_state(self)->int:
    self.N += 1
    return self.N-1

  def add_transition(self,src:int,symbol:Hashable,dst:int,weight:float=1.):
    if weight<0: raise ValueError(f'Negative transition weight: {weight}')
    self.transitions.append((src,symbol,dst,weight))

  def add_epsilon_transition(self,src:int,dst:int,weight:float=1.):
    if weight<0: raise ValueError(f'Negative transition weight: {weight}')
    self.epsilons.append((src,dst,weight))

#-------------------------------------------------------------------------------
  def add_transitions_for_sequence(self,src:int,elements:Iterable[Hashable],weight:float=1.)->int:
    r"""
Adds a linear chain of fresh states from state *src*, one transition of weight *weight* per element, and returns the last state of the chain.
    """
#-------------------------------------------------------------------------------
    for c in elements:
      dst = self.add_state()
      self.add_transition(src,c,dst,weight)
      src = dst
    return src

  def set_end_weight(self,state:int,weight:float):
    if weight<0: raise ValueError(f'Negative end weight: {weight}')
    self.final[state] = weight

#-------------------------------------------------------------------------------
  def get_automaton(self,sparse:bool=True,logscale:float=0.)->WFSA:
    r"""
Returns the automaton built so far, with sparse or dense matrices depending on *sparse*, and global log scale *logscale*.
    """
#-------------------------------------------------------------------------------
    N = self.N
    def matrix(L):
      I,J,data = (list(x) for x in zip(*L)) if L else ([],[],[])
      m = csr_matrix((data,(I,J)),shape=(N,N)) # duplicates are summed
      return m if sparse else m.toarray()
    symbols = tuple(dict.fromkeys(c for _,c,_,_ in self.transitions))
    index = dict((c,i) for i,c in enumerate(symbols))
    L = [[] for _ in symbols]
    for src,c,dst,w in self.transitions: L[index[c]].append((src,dst,w))
    final = zeros(N)
    for s,w in self.final.items(): final[s] = w
    epsilon = matrix(self.epsilons) if self.epsilons else None
    return WFSA(tuple(matrix(l) for l in L),start=onehot(self.start,N),final=final,epsilon=epsilon,logscale=logscale,symb_names=symbols,mtype=(csr_matrix if sparse else ndarray))

#===============================================================================
def log_similarity(a1:WFSA,a2:WFSA)->float:
  r"""
Returns a measure of dissimilarity between two automata, in log domain:

.. math::

   \log\frac{\|a_1-a_2\|^2}{\|a_1\|^2+\|a_2\|^2}

where the norm derives from the inner product :math:`\langle a_1,a_2\rangle=\sum_s a_1(s)a_2(s)`, obtained as the normaliser of the intersection. The result is :math:`-\infty` when the automata are equal (or both null) and at most 0.
  """
#===============================================================================
  l11,l22,l12 = ((a@b).log_normaliser() for a,b in ((a1,a1),(a2,a2),(a1,a2)))
  if any(isnan(x) or x==inf for x in (l11,l22,l12)): raise ValueError('Similarity undefined for automata with divergent norm')
  if isneginf(l11) and isneginf(l22): return -inf
  with seterr_c(divide='ignore',invalid='ignore'):
    l,sign = logsumexp([l11,l22,l12],b=[1.,1.,-2.],return_sign=True)
  if sign<=0 or isnan(l): return -inf
  return float(l-logaddexp(l11,l22))
