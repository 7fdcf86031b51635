"""Properties shared by the dictionary and automaton representations."""
from math import log, inf, isclose

import pytest

from WLang import (
    Weight, EnumerationCountError, WeightFunction,
    StringDictionaryWeightFunction, ListDictionaryWeightFunction,
    StringAutomatonWeightFunction, ListAutomatonWeightFunction,
)

FAMILIES = {
    'string': dict(
        dictionary=StringDictionaryWeightFunction, automaton=StringAutomatonWeightFunction,
        A={'a': 1., 'ab': 2.}, B={'ab': 3., 'b': .5},
        probes=['', 'a', 'b', 'ab', 'ba', 'abab', 'c'], suffix='xy',
    ),
    'list': dict(
        dictionary=ListDictionaryWeightFunction, automaton=ListAutomatonWeightFunction,
        A={(1,): 1., (1, 2): 2.}, B={(1, 2): 3., (2,): .5},
        probes=[(), (1,), (2,), (1, 2), (2, 1), (1, 2, 1, 2), (3,)], suffix=(8, 9),
    ),
}


@pytest.fixture(params=sorted(FAMILIES))
def family(request):
    return FAMILIES[request.param]


@pytest.fixture(params=['dictionary', 'automaton'])
def cls(request, family):
    return family[request.param]


def assert_same(f, g, probes):
    for p in probes:
        x, y = f(p), g(p)
        if x == -inf or y == -inf:
            assert x == y, p
        else:
            assert isclose(x, y, rel_tol=1e-9, abs_tol=1e-12), p


def concatenations(cls, probes):
    return [cls.manipulator.concat(x, y) for x in probes for y in probes]


class TestInterface:
    def test_is_weight_function(self, cls):
        assert issubclass(cls, WeightFunction)
        assert cls.from_values({}).uses_automaton_representation == (cls.__name__.endswith('AutomatonWeightFunction'))
        assert not cls.from_values({}).uses_groups

    def test_values(self, cls, family):
        f = cls.from_values(family['A'])
        for k, v in family['A'].items():
            assert isclose(f.get_log_value(k), log(v), abs_tol=1e-12)
        assert f.get_log_value(family['suffix']) == -inf

    def test_repeated_keys_are_summed(self, cls, family):
        k = family['probes'][3]
        f = cls.from_values([(k, 1.), (k, 2.)])
        assert isclose(f.get_log_value(k), log(3.))

    def test_as_automaton(self, cls, family):
        f = cls.from_values(family['A'])
        a = f.as_automaton()
        assert_same(f.get_log_value, lambda p: a.logvalue(cls.manipulator.elements(p)), family['probes'])

    def test_point(self, cls, family):
        k = family['probes'][3]
        f = cls.from_point(k)
        assert f.is_point_mass
        assert f.point == k
        with pytest.raises(ValueError):
            cls.from_weights([]).point
        with pytest.raises(ValueError):
            cls.from_values(family['A']).point
        assert not cls.from_values(family['A']).is_point_mass

    def test_is_zero(self, cls, family):
        assert cls.from_weights([]).is_zero()
        assert cls.from_values([(family['probes'][1], 0.)]).is_zero()
        assert not cls.from_values(family['A']).is_zero()

    def test_enumerate_support(self, cls, family):
        f = cls.from_values(family['A'])
        assert set(f.enumerate_support()) == set(family['A'])
        with pytest.raises(EnumerationCountError):
            f.enumerate_support(max_count=1)
        assert f.try_enumerate_support(max_count=1) == (False, None)

    def test_enumerate_paths(self, cls, family):
        f = cls.from_values(family['A'])
        paths = sorted((tuple(d.point_value for d in dists), round(w, 9)) for dists, w in f.enumerate_paths())
        expected = sorted((tuple(cls.manipulator.elements(k)), round(log(v), 9)) for k, v in family['A'].items())
        assert paths == expected

    def test_try_normalize_values(self, cls, family):
        f = cls.from_values(family['A'])
        ok, g, z = f.try_normalize_values()
        assert ok
        assert isclose(z, log(3.))
        assert isclose(g.get_log_normalizer(), 0., abs_tol=1e-12)
        ok, g, z = cls.from_weights([]).try_normalize_values()
        assert not ok and z == -inf

    def test_normalize_structure(self, cls, family):
        f = cls.from_values(family['A'])
        assert_same(f.get_log_value, f.normalize_structure().get_log_value, family['probes'])

    def test_weighted_sum_rejects_negative(self, cls, family):
        f = cls.from_values(family['A'])
        with pytest.raises(ValueError):
            f.weighted_sum(-.5, 1., f)

    def test_groups(self, cls, family):
        f = cls.from_values(family['A'])
        assert f.get_groups() == {}
        assert not f.has_group(1)
        with pytest.raises(ValueError):
            f.append(family['suffix'], group=2)

    def test_max_diff(self, cls, family):
        f, g = cls.from_values(family['A']), cls.from_values(family['B'])
        assert f.max_diff(f) == pytest.approx(0., abs=1e-9)
        assert 0. < f.max_diff(g) <= 1.


class TestAlgebra:
    """Operations agree across representations and commute with conversion to automata."""

    @pytest.fixture
    def operands(self, family):
        D, M = family['dictionary'], family['automaton']
        return (D.from_values(family['A']), D.from_values(family['B'])), (M.from_values(family['A']), M.from_values(family['B']))

    OPERATIONS = {
        'sum': (lambda f, g: f + g, lambda a, b: a + b),
        'product': (lambda f, g: f @ g, lambda a, b: a @ b),
        'append': (lambda f, g: f.append(g), lambda a, b: a.concat(b)),
        'sum_log': (lambda f, g: f.sum_log(log(.25), log(3.), g), lambda a, b: a.scale_log(log(.25)) + b.scale_log(log(3.))),
        'weighted_sum': (lambda f, g: f.weighted_sum(.25, 3., g), lambda a, b: a.scale_log(log(.25)) + b.scale_log(log(3.))),
        'scale_log': (lambda f, g: f.scale_log(-1.5), lambda a, b: a.scale_log(-1.5)),
    }

    @pytest.mark.parametrize('name', sorted(OPERATIONS))
    def test_commutes_with_conversion(self, name, family, operands):
        op, aop = self.OPERATIONS[name]
        (f, g), (m, n) = operands
        probes = concatenations(family['dictionary'], family['probes'])
        elements = family['dictionary'].manipulator.elements
        for x, y in ((f, g), (m, n)):
            r = op(x, y)
            a = aop(x.as_automaton(), y.as_automaton())
            assert_same(r.get_log_value, lambda p: a.logvalue(elements(p)), probes)
        assert_same(op(f, g).get_log_value, op(m, n).get_log_value, probes)

    def test_append_sequence(self, family, operands):
        suffix = family['suffix']
        concat = family['dictionary'].manipulator.concat
        for f in operands[0][0], operands[1][0]:
            h = f.append(suffix)
            for k in family['A']:
                assert isclose(h.get_log_value(concat(k, suffix)), f.get_log_value(k), abs_tol=1e-12)

    def test_sum_associative(self, family, operands):
        probes = family['probes']
        for f, g in operands:
            h = f.scale_log(.5)
            assert_same(((f + g) + h).get_log_value, (f + (g + h)).get_log_value, probes)
            assert_same((f + g).get_log_value, (g + f).get_log_value, probes)
            assert_same((f @ g).get_log_value, (g @ f).get_log_value, probes)


class TestAutomatonOnly:
    def test_repeat(self, family):
        M = family['automaton']
        k = family['probes'][1]
        f = M.from_values([(k, .5)]).repeat(1, 3)
        concat = M.manipulator.concat
        assert isclose(f.get_log_value(k), log(.5))
        assert isclose(f.get_log_value(concat(k, concat(k, k))), log(.125))
        assert f.get_log_value(concat(k, concat(k, concat(k, k)))) == -inf
        assert f.get_log_value(family['probes'][0]) == -inf

    def test_repeat_unbounded(self, family):
        M = family['automaton']
        f = M.from_values([(family['probes'][1], .5)]).repeat(0)
        assert isclose(f.get_log_normalizer(), log(2.))
        ok, s = f.try_enumerate_support(10)
        assert not ok and s is None
        ok, g, z = M.from_values([(family['probes'][1], 1.)]).repeat().try_normalize_values()
        assert not ok and z == inf

    def test_to_dictionary(self, family):
        M, D = family['automaton'], family['dictionary']
        f = M.from_values(family['A']).to_dictionary()
        assert isinstance(f, D)
        assert_same(f.get_log_value, D.from_values(family['A']).get_log_value, family['probes'])

    def test_cross_representation_max_diff(self, family):
        f = family['dictionary'].from_values(family['A'])
        g = family['automaton'].from_values(family['A'])
        assert f.max_diff(g) == pytest.approx(0., abs=1e-9)

    def test_normalize_structure_trims(self, family):
        M = family['automaton']
        f = M.from_values(family['A'])
        assert f.normalize_structure() is f
        g = f @ M.from_values(family['B'])
        h = g.normalize_structure()
        assert h.as_automaton().N < g.as_automaton().N
        assert_same(g.get_log_value, h.get_log_value, family['probes'])


def test_dictionary_weights_are_exact():
    f = StringDictionaryWeightFunction.from_weights([('a', Weight(-1e-3)), ('a', Weight(-1e-3))])
    assert f.dictionary['a'] == Weight(-1e-3) + Weight(-1e-3)
