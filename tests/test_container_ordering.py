from types import SimpleNamespace

from vinetrack.services.vessel_allocation import container_sort_key, embedded_number, sort_containers


def _names(containers):
    return [container['name'] for container in containers]


def test_numbers_sort_numerically_not_lexically():
    containers = [{'id': 1, 'name': 'Barrel 10'}, {'id': 2, 'name': 'Barrel 2'}, {'id': 3, 'name': 'Barrel 1'}]

    assert _names(sort_containers(containers)) == ['Barrel 1', 'Barrel 2', 'Barrel 10']


def test_unnumbered_names_sort_after_numbered():
    containers = [
        {'id': 1, 'name': 'Tank West'},
        {'id': 2, 'name': 'Barrel 300'},
        {'id': 3, 'name': 'Amphora'},
    ]

    assert _names(sort_containers(containers)) == ['Barrel 300', 'Amphora', 'Tank West']


def test_equal_numbers_break_ties_case_insensitively():
    containers = [{'id': 1, 'name': 'tank 1'}, {'id': 2, 'name': 'Barrel 1'}, {'id': 3, 'name': 'amphora 1'}]

    assert _names(sort_containers(containers)) == ['amphora 1', 'Barrel 1', 'tank 1']


def test_first_embedded_integer_is_the_sort_number():
    assert embedded_number('T2-Barrel 9') == 2
    assert embedded_number('12 Gallon Keg') == 12
    assert embedded_number('Tank') is None


def test_sort_accepts_objects_and_plain_names():
    objects = [SimpleNamespace(id=5, name='Barrel 3'), SimpleNamespace(id=6, name='Barrel 1')]

    assert [item.id for item in sort_containers(objects)] == [6, 5]
    assert container_sort_key('Barrel 4') < container_sort_key('Barrel 40')


def test_order_is_stable_for_identical_names():
    containers = [{'id': 9, 'name': 'Barrel 1'}, {'id': 4, 'name': 'Barrel 1'}]

    assert [c['id'] for c in sort_containers(containers)] == [4, 9]
