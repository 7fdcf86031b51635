import pickle
from math import log, inf, isclose

import pytest

from WLang import (
    Weight, DiscreteChar, Discrete, EnumerationCountError,
    StringDictionaryWeightFunction, ListDictionaryWeightFunction, StringAutomatonWeightFunction,
)

SDWF = StringDictionaryWeightFunction
LDWF = ListDictionaryWeightFunction


def values(f):
    return dict((k, w.value) for k, w in f.dictionary.items())


class StrictStringDictionaryWeightFunction(StringDictionaryWeightFunction):
    check_distinct = True


class TestFactories:
    def test_from_weights_sums_repeated_keys(self):
        f = SDWF.from_weights([('a', Weight.from_value(2.)), ('b', Weight.one()), ('a', Weight.from_value(3.))])
        assert values(f) == pytest.approx({'a': 5., 'b': 1.})
        g = SDWF.from_distinct_weights([('a', Weight.from_value(5.)), ('b', Weight.one())])
        assert values(g) == pytest.approx(values(f))

    def test_from_mapping(self):
        f = SDWF.from_values({'a': 2., 'b': 1.})
        assert values(f) == pytest.approx({'a': 2., 'b': 1.})

    def test_from_distinct_weights_last_write_wins(self):
        f = SDWF.from_distinct_values([('a', 2.), ('a', 3.)])
        assert values(f) == pytest.approx({'a': 3.})

    def test_check_distinct(self):
        with pytest.raises(ValueError):
            StrictStringDictionaryWeightFunction.from_distinct_values([('a', 2.), ('a', 3.)])
        f = StrictStringDictionaryWeightFunction.from_distinct_values([('a', 2.), ('b', 3.)])
        assert len(f) == 2

    def test_from_values_rejects_negative(self):
        with pytest.raises(ValueError):
            SDWF.from_values([('a', -1.)])

    def test_key_type_checked(self):
        with pytest.raises(TypeError):
            SDWF.from_values([(('a',), 1.)])

    def test_string_keys_are_sorted(self):
        f = SDWF.from_values([('b', 1.), ('a', 1.), ('c', 1.)])
        assert list(f.dictionary) == ['a', 'b', 'c']

    def test_list_keys_are_tuples_in_insertion_order(self):
        f = LDWF.from_values([([2, 1], 1.), ((1, 2), 2.), ([1, 2], 1.)])
        assert list(f.dictionary) == [(2, 1), (1, 2)]
        assert isclose(f.get_log_value([1, 2]), log(3.))

    def test_dictionary_is_read_only(self):
        f = SDWF.from_values([('a', 1.)])
        with pytest.raises(TypeError):
            f.dictionary['b'] = Weight.one()

    def test_pickle(self):
        f = SDWF.from_values([('a', 2.), ('b', 0.)])
        g = pickle.loads(pickle.dumps(f))
        assert type(g) is SDWF
        assert dict(g.dictionary) == dict(f.dictionary)


class TestStructure:
    def test_point(self):
        assert SDWF.from_point('x').point == 'x'
        assert SDWF.from_point('x').get_log_value('x') == 0.
        with pytest.raises(ValueError):
            SDWF.from_weights([]).point
        with pytest.raises(ValueError):
            SDWF.from_values([('a', 1.), ('b', 1.)]).point

    def test_is_point_mass_ignores_weight(self):
        assert SDWF.from_values([('a', 0.)]).is_point_mass
        assert not SDWF.from_weights([]).is_point_mass

    def test_is_zero_and_normalize_structure(self):
        f = SDWF.from_values([('a', 0.)])
        assert f.is_zero()
        assert len(f) == 1
        assert len(f.normalize_structure()) == 0
        assert SDWF.from_weights([]).is_zero()
        g = SDWF.from_values([('a', 1.), ('b', 0.)])
        assert not g.is_zero()
        assert list(g.normalize_structure().dictionary) == ['a']
        h = SDWF.from_values([('a', 1.)])
        assert h.normalize_structure() is h

    def test_capabilities(self):
        f = SDWF.from_values([('a', 1.)])
        assert not f.uses_automaton_representation
        assert not f.uses_groups
        assert f.get_groups() == {}
        assert not f.has_group(0)

    def test_enumerate_support(self):
        f = SDWF.from_values([('a', 1.), ('b', 0.)])
        assert f.enumerate_support() == ['a', 'b']
        with pytest.raises(EnumerationCountError):
            f.enumerate_support(max_count=1)
        assert f.try_enumerate_support(max_count=1) == (False, None)
        assert f.try_enumerate_support(max_count=2, try_determinize=False) == (True, ['a', 'b'])


class TestNormalisation:
    def test_already_normalised(self):
        f = SDWF.from_values([('a', .5), ('b', .5)])
        ok, g, z = f.try_normalize_values()
        assert ok
        assert isclose(z, 0., abs_tol=1e-12)
        assert values(g) == pytest.approx({'a': .5, 'b': .5})

    def test_normalise(self):
        f = SDWF.from_values([('a', 2.), ('b', 2.)])
        ok, g, z = f.try_normalize_values()
        assert ok
        assert isclose(z, log(4.))
        assert values(g) == pytest.approx({'a': .5, 'b': .5})
        assert values(f) == pytest.approx({'a': 2., 'b': 2.})

    @pytest.mark.parametrize('pairs', [[], [('a', 0.)]])
    def test_degenerate(self, pairs):
        f = SDWF.from_values(pairs)
        ok, g, z = f.try_normalize_values()
        assert not ok
        assert g is f
        assert z == -inf

    def test_log_normalizer_empty(self):
        assert SDWF.from_weights([]).get_log_normalizer() == -inf


class TestAlgebra:
    A = SDWF.from_values([('a', 1.), ('b', 2.)])
    B = SDWF.from_values([('b', 3.), ('c', 4.)])
    C = SDWF.from_values([('a', .5), ('d', 1.)])

    def test_product(self):
        assert values(self.A.product(self.B)) == pytest.approx({'b': 6.})
        assert values(self.A @ self.B) == pytest.approx(values(self.B @ self.A))

    def test_product_keeps_operands(self):
        self.A @ self.B
        assert values(self.A) == pytest.approx({'a': 1., 'b': 2.})

    def test_sum(self):
        assert values(self.A + self.B) == pytest.approx({'a': 1., 'b': 5., 'c': 4.})
        assert values(self.A + self.B) == pytest.approx(values(self.B + self.A))
        assert values((self.A + self.B) + self.C) == pytest.approx(values(self.A + (self.B + self.C)))

    def test_sum_log(self):
        f = self.A.sum_log(log(2.), log(.5), self.B)
        assert values(f) == pytest.approx({'a': 2., 'b': 5.5, 'c': 2.})

    def test_weighted_sum(self):
        f = self.A.weighted_sum(0., 1., self.B)
        assert values(f) == pytest.approx({'a': 0., 'b': 3., 'c': 4.})
        with pytest.raises(ValueError):
            self.A.weighted_sum(-1., 1., self.B)
        with pytest.raises(ValueError):
            self.A.weighted_sum(1., -1., self.B)

    def test_scale_log(self):
        assert values(self.A.scale_log(log(3.))) == pytest.approx({'a': 3., 'b': 6.})

    def test_append_sequence(self):
        f = self.A.append('xy')
        for k in self.A.dictionary:
            assert f.get_log_value(k + 'xy') == self.A.get_log_value(k)
        assert f.get_log_value('a') == -inf

    def test_append_function(self):
        f = SDWF.from_values([('a', 1.), ('', 1.)]).append(SDWF.from_values([('b', 2.), ('ab', 3.)]))
        assert values(f) == pytest.approx({'ab': 5., 'aab': 3., 'b': 2.})

    def test_append_list(self):
        f = LDWF.from_values([([1], 2.)]).append(LDWF.from_values([([2], 3.), ([], 1.)]))
        assert values(f) == pytest.approx({(1, 2): 6., (1,): 2.})
        assert values(LDWF.from_values([([1], 2.)]).append([3, 4])) == pytest.approx({(1, 3, 4): 2.})

    def test_append_groups_unsupported(self):
        with pytest.raises(ValueError):
            self.A.append('x', group=1)
        with pytest.raises(ValueError):
            self.A.append(self.B, group=1)

    def test_get_log_value(self):
        assert isclose(self.A.get_log_value('b'), log(2.))
        assert self.A.get_log_value('z') == -inf

    def test_repeat_unsupported(self):
        with pytest.raises(NotImplementedError):
            self.A.repeat(1, 2)

    def test_mixed_representations_rejected(self):
        with pytest.raises(TypeError):
            self.A.sum(self.A.to_automaton_function())

    def test_enumerate_paths(self):
        f = SDWF.from_values([('ab', 2.)])
        paths = list(f.enumerate_paths())
        assert paths == list(f.enumerate_paths())
        (dists, w), = paths
        assert dists == [DiscreteChar.point('a'), DiscreteChar.point('b')]
        assert isclose(w, log(2.))
        (dists, w), = LDWF.from_values([([7], 1.)]).enumerate_paths()
        assert dists == [Discrete.point(7)]


class TestAutomaton:
    def test_as_automaton(self):
        f = SDWF.from_values([('ab', 2.), ('b', 0.), ('', .5)])
        a = f.as_automaton()
        # start state, the chain of 'ab' and the branch of the empty string
        assert a.N == 5
        assert isclose(a.logvalue('ab'), log(2.))
        assert isclose(a.logvalue(''), log(.5))
        assert a.logvalue('b') == -inf

    def test_as_automaton_wide_range(self):
        # both weights underflow in linear domain, their ratio does not
        f = SDWF.from_weights([('a', Weight(-1300.)), ('b', Weight(-1000.))])
        a = f.as_automaton(sparse=False)
        assert isclose(a.logvalue('a'), -1300.)
        assert isclose(a.logvalue('b'), -1000.)

    @pytest.mark.parametrize('sparse', [True, False])
    def test_as_automaton_beyond_linear_range(self, sparse):
        f = SDWF.from_weights([('a', Weight(0.)), ('b', Weight(-800.)), ('', Weight(-1000.)), ('cd', Weight(-1200.))])
        a = f.as_automaton(sparse=sparse)
        for k in f.dictionary:
            assert isclose(a.logvalue(k), f.get_log_value(k), abs_tol=1e-9), k
        g = f.to_automaton_function()
        assert isclose(g.get_log_value('b'), -800.)
        assert g.get_log_value('ba') == -inf

    def test_as_automaton_zero(self):
        a = SDWF.from_values([('a', 0.)]).as_automaton()
        assert a.logvalue('a') == -inf
        assert a.log_normaliser() == -inf

    def test_to_automaton_function(self):
        g = SDWF.from_values([('ab', 2.)]).to_automaton_function()
        assert isinstance(g, StringAutomatonWeightFunction)
        assert isclose(g.get_log_value('ab'), log(2.))

    def test_max_diff(self):
        f = SDWF.from_values([('a', 1.), ('b', 2.)])
        assert f.max_diff(f) == 0.
        assert isclose(f.max_diff(SDWF.from_values([('c', 1.)])), 1.)
        assert SDWF.from_weights([]).max_diff(SDWF.from_weights([])) == 0.

    def test_max_diff_agrees_with_automata(self):
        f = SDWF.from_values([('a', 1.), ('ab', 2.), ('b', .5)])
        g = SDWF.from_values([('ab', 3.), ('b', .5), ('c', 1.)])
        assert isclose(f.max_diff(g), f.max_diff(g.to_automaton_function()), rel_tol=1e-9)
        assert isclose(f.max_diff(g), (1 + 1 + 1) / (1 + 4 + .25 + 9 + .25 + 1), rel_tol=1e-9)

    def test_max_diff_large(self):
        keys = [f'k{i:04d}' for i in range(1001)]
        f = SDWF.from_values((k, 1. + i) for i, k in enumerate(keys[:-1]))
        g = SDWF.from_values((k, 1. + i) for i, k in enumerate(keys) if i)
        assert f.max_diff(f) == 0.
        norm = sum((1. + i) ** 2 for i in range(1000)) + sum((1. + i) ** 2 for i in range(1, 1001))
        assert isclose(f.max_diff(g), (1. + 1001. ** 2) / norm, rel_tol=1e-9)

    def test_log_normaliser_large(self):
        f = SDWF.from_values((f'k{i:04d}', 1. + i) for i in range(1000))
        a = f.as_automaton()
        assert a.N == 1 + 1000 * 6
        assert isclose(a.log_normaliser(), log(500500.), rel_tol=1e-9)
        assert isclose(a.log_normaliser(), f.get_log_normalizer(), rel_tol=1e-9)


class TestSequenceTypes:
    S = SDWF.from_values([('ab', 1.)])
    L = LDWF.from_values([(['a', 'b'], 1.)])

    @pytest.mark.parametrize('op', [
        lambda f, g: f @ g,
        lambda f, g: f + g,
        lambda f, g: f.sum_log(0., 0., g),
        lambda f, g: f.append(g),
        lambda f, g: f.max_diff(g),
    ])
    def test_mixed_sequence_types_rejected(self, op):
        for f, g in ((self.S, self.L), (self.L, self.S), (self.S.to_automaton_function(), self.L), (self.L.to_automaton_function(), self.S)):
            with pytest.raises(TypeError):
                op(f, g)

    def test_subclasses_are_compatible(self):
        f = StrictStringDictionaryWeightFunction.from_values([('ab', 2.)])
        assert values(self.S @ f) == pytest.approx({'ab': 2.})
        assert values(f + self.S) == pytest.approx({'ab': 3.})
