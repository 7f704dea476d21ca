import numpy as np

from garden import PILLAR, SOIL, TYPE_CODES, WATER_SOURCE
from terrain import generate_garden


def test_same_seed_same_garden():
    a = generate_garden(seed=99)
    b = generate_garden(seed=99)
    assert np.array_equal(a.types, b.types)
    assert np.array_equal(a.plants, b.plants)


def test_generated_garden_layout():
    garden = generate_garden(width=30, height=20, seed=42)
    assert (garden.width, garden.height) == (30, 20)
    assert garden.seed == 42
    # Plants only grow on soil
    assert np.all(garden.types[garden.plants] == TYPE_CODES[SOIL])
    assert garden.hoses == ()
    assert np.all(garden.moisture == 0.0)


def test_water_sources_sit_on_the_border():
    for seed in range(5):
        garden = generate_garden(width=20, height=16, seed=seed)
        for tile in garden.find_water_sources():
            assert tile.type == WATER_SOURCE
            assert tile.x in (0, garden.width - 1) or tile.y in (0, garden.height - 1)
        assert len(garden.find_water_sources()) <= 4


def test_pillar_density_increases_pillars():
    sparse = generate_garden(width=30, height=30, pillar_density=0.0, seed=1)
    dense = generate_garden(width=30, height=30, pillar_density=0.3, seed=1)
    count = lambda g: int((g.types == TYPE_CODES[PILLAR]).sum())
    assert count(dense) > count(sparse)
