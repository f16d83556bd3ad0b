from mga_transfer.dynamics.acceleration import PerturbationSet, build_perturbation_sets


def test_default_sequence_sets():
    sequence = ('Earth', 'Venus', 'Venus', 'Earth', 'Jupiter')
    sets = build_perturbation_sets(4, 'Sun', 'Spacecraft', sequence)

    assert [s.third_bodies for s in sets] == [
        ('Earth', 'Venus'),
        ('Venus',),
        ('Venus', 'Earth'),
        ('Earth', 'Jupiter'),
    ]
    assert all(s.central_body == 'Sun' for s in sets)
    assert sets[0].bodies == ('Sun', 'Earth', 'Venus')


def test_repeated_body_is_not_duplicated():
    sets = build_perturbation_sets(1, 'Sun', 'Spacecraft', ('Venus', 'Venus'))
    assert sets[0].third_bodies == ('Venus',)
    assert sets[0].bodies.count('Venus') == 1


def test_central_body_is_not_a_third_body():
    sets = build_perturbation_sets(2, 'Sun', 'Spacecraft', ('Sun', 'Earth', 'Sun'))
    for s in sets:
        assert 'Sun' not in s.third_bodies
        assert s.bodies.count('Sun') == 1


def test_builder_is_pure():
    sequence = ['Earth', 'Mars']
    first = build_perturbation_sets(1, 'Sun', 'Spacecraft', sequence)
    second = build_perturbation_sets(1, 'Sun', 'Spacecraft', sequence)
    assert first == second
    assert sequence == ['Earth', 'Mars']
    assert first[0] == PerturbationSet(0, 'Spacecraft', 'Sun', ('Earth', 'Mars'))
