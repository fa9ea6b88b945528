"""
Tests for genomes, individuals, fitness, genetic operators and checkpoints.

Run with: python -m pytest tests/test_evolution.py -v
"""

import pytest
import numpy as np
import math
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from image_generator.core.activations import ACTIVATION_NAMES
from image_generator.core.network import NeuralNetwork
from image_generator.core.numbers import RandomSource
from image_generator.core.training import TrainingOptions
from image_generator.evolution.genome import Genome, make_random_genome, generate_individual_id
from image_generator.evolution.population import (
    DataSizes,
    TrainedIndividual,
    Population,
    spawn,
)
from image_generator.evolution.fitness import (
    structural_fitness,
    evaluate_fitness,
    ranking_key,
    elite_count,
)
from image_generator.evolution.operators import (
    crossover_pivots,
    select_elite,
    mate,
    mutate,
    breed,
)
from image_generator.evolution.config import EvolutionConfig, MIN_POPULATION_SIZE
from image_generator.evolution.checkpoint import (
    EvolutionCheckpoint,
    EvolutionHistory,
    save_individual,
    load_individual,
    generate_run_id,
)
from image_generator.exceptions import InvalidConfigurationError


def make_individual(hidden_layers, activation='sigmoid', input_size=1, output_size=1, seed=0):
    genome = Genome(
        activation=activation,
        binary_thresh=0.5,
        leaky_relu_alpha=0.01,
        hidden_layers=list(hidden_layers),
    )
    network = NeuralNetwork.from_genome(
        genome, input_size, output_size, rng=RandomSource(seed)
    ).initialize()
    return TrainedIndividual.from_network(network, genome=genome)


class TestGenome:
    """Tests for Genome and random genome synthesis."""

    def test_genome_creation(self):
        genome = Genome(activation='relu', binary_thresh=0.5, leaky_relu_alpha=0.01, hidden_layers=[8, 4])

        assert genome.depth == 2
        assert genome.architecture_string == 'relu[8-4]'

    def test_genome_validation(self):
        """Test invalid genomes raise."""
        with pytest.raises(ValueError):
            Genome(activation='softmax', binary_thresh=0.5, leaky_relu_alpha=0.01, hidden_layers=[4])
        with pytest.raises(ValueError):
            Genome(activation='relu', binary_thresh=0.5, leaky_relu_alpha=0.01, hidden_layers=[])
        with pytest.raises(ValueError):
            Genome(activation='relu', binary_thresh=0.5, leaky_relu_alpha=0.01, hidden_layers=[4, 0])

    def test_genome_serialization(self):
        genome = Genome(activation='tanh', binary_thresh=0.25, leaky_relu_alpha=0.02, hidden_layers=[3])
        restored = Genome.from_dict(genome.to_dict())
        assert restored == genome

    def test_genome_copy_is_independent(self):
        genome = Genome(activation='tanh', binary_thresh=0.25, leaky_relu_alpha=0.02, hidden_layers=[3])
        clone = genome.copy()
        clone.hidden_layers.append(5)
        assert genome.hidden_layers == [3]

    def test_make_random_genome_bounds(self):
        """Test random genomes respect every range."""
        rng = RandomSource(seed=0)
        for _ in range(200):
            genome = make_random_genome(max_layers=3, max_neurons=4, rng=rng)

            assert genome.within_bounds(3, 4)
            assert genome.activation in ACTIVATION_NAMES
            assert 0.001 <= genome.binary_thresh <= 0.999
            assert 0.001 <= genome.leaky_relu_alpha <= 0.1
            assert genome.binary_thresh == round(genome.binary_thresh, 4)

    def test_make_random_genome_covers_all_activations(self):
        rng = RandomSource(seed=1)
        seen = {make_random_genome(max_layers=1, max_neurons=1, rng=rng).activation for _ in range(200)}
        assert seen == set(ACTIVATION_NAMES)

    def test_make_random_genome_single_layer_limits(self):
        genome = make_random_genome(max_layers=1, max_neurons=1, rng=RandomSource(2))
        assert genome.hidden_layers == [1]

    def test_generate_individual_id(self):
        assert generate_individual_id(3, 'child').startswith('child_gen3_')
        assert generate_individual_id(3, 'child') != generate_individual_id(3, 'child')


class TestTrainedIndividual:
    """Tests for TrainedIndividual and Population."""

    def test_internal_layers(self):
        """Test the output layer is excluded from the internal layers."""
        individual = make_individual([4, 3])
        assert len(individual.weights) == 3
        assert list(individual.internal_layers) == [0, 1]

    def test_copy_is_deep(self):
        individual = make_individual([4])
        clone = individual.copy()
        clone.weights[0][0, 0] = 123.0
        clone.genome.hidden_layers[0] = 9

        assert individual.weights[0][0, 0] != 123.0
        assert individual.genome.hidden_layers == [4]

    def test_serialization(self):
        """Test to_dict/from_dict keeps parameters and lineage."""
        individual = make_individual([4, 2], activation='relu')
        individual.error = 0.25
        individual.parents = ('a', 'b')
        restored = TrainedIndividual.from_dict(individual.to_dict())

        assert restored.individual_id == individual.individual_id
        assert restored.parents == ('a', 'b')
        assert restored.error == 0.25
        for W, W2 in zip(individual.weights, restored.weights):
            np.testing.assert_array_equal(W, W2)

    def test_run_matches_network(self):
        genome = Genome(activation='tanh', binary_thresh=0.5, leaky_relu_alpha=0.01, hidden_layers=[3])
        network = NeuralNetwork.from_genome(genome, 1, 2, rng=RandomSource(3)).initialize()
        individual = TrainedIndividual.from_network(network, genome=genome)

        np.testing.assert_allclose(individual.run([0.3]), network.run([0.3]))

    def test_population_sort(self):
        """Test ordering: lowest error first, ties by highest fitness."""
        a, b, c, d = (make_individual([n]) for n in (1, 2, 3, 4))
        a.error, a.fitness = 0.5, 0.9
        b.error, b.fitness = 0.1, 0.2
        c.error, c.fitness = 0.1, 0.8
        d.error, d.fitness = math.nan, 1.0
        population = Population(individuals=[a, b, c, d]).sort()

        assert [id(ind) for ind in population] == [id(x) for x in (c, b, a, d)]
        assert population.best is c

    def test_population_serialization(self):
        population = Population(individuals=[make_individual([2]), make_individual([3])], generation=4)
        restored = Population.from_dict(population.to_dict())

        assert len(restored) == 2
        assert restored.generation == 4
        assert restored[1].hidden_layers == [3]

    def test_spawn(self):
        """Test spawn builds untrained networks within the limits."""
        population = spawn(10, DataSizes(1, 16), max_layers=3, max_neurons=5, rng=RandomSource(0))

        assert len(population) == 10
        for individual in population:
            assert individual.genome.within_bounds(3, 5)
            assert individual.weights[0].shape[1] == 1
            assert individual.weights[-1].shape[0] == 16
            assert individual.parents == ('random', 'random')

    def test_spawn_empty(self):
        assert len(spawn(0, DataSizes(1, 1))) == 0


class TestFitness:
    """Tests for fitness scoring and elite sizing."""

    def test_structural_fitness(self):
        assert structural_fitness([128], 128, 128) == pytest.approx(1 - 1 / 128)
        assert structural_fitness([64, 64], 2, 128) == pytest.approx(0.5)
        assert structural_fitness([4, 4], 2, 4) == pytest.approx(0.0)

    def test_smaller_networks_score_higher(self):
        assert structural_fitness([2], 4, 8) > structural_fitness([2, 2], 4, 8)
        assert structural_fitness([2], 4, 8) > structural_fitness([6], 4, 8)

    def test_evaluate_fitness(self):
        individual = make_individual([2, 2])
        value = evaluate_fitness(individual, max_layers=4, max_neurons=4)
        assert individual.fitness == value == pytest.approx(0.75)

    def test_ranking_key_non_finite(self):
        individual = make_individual([2])
        individual.error = math.nan
        assert ranking_key(individual)[0] == math.inf

    @pytest.mark.parametrize('size, elitism, expected', [
        (128, 0.1, 12),
        (10, 0.1, 2),
        (3, 1.0, 3),
        (2, 0.5, 2),
        (25, 0.2, 5),
    ])
    def test_elite_count(self, size, elitism, expected):
        assert elite_count(size, elitism) == expected


class TestOperators:
    """Tests for selection, crossover, mutation and breeding."""

    def test_crossover_pivots(self):
        assert crossover_pivots(8) == [2, 4, 6]
        assert crossover_pivots(3) == [0, 1, 2]
        assert crossover_pivots(1) == [0, 0, 0]

    def test_select_elite(self):
        population = Population(individuals=[make_individual([n]) for n in (1, 2, 3)])
        assert len(select_elite(population, 2)) == 2
        assert len(select_elite(population, 5)) == 3
        assert select_elite(population, 1)[0] is population[0]

    def test_mate_swaps_internal_layers(self):
        """Test mate exchanges row bands and leaves the output layer alone."""
        a = make_individual([4, 4], seed=1)
        b = make_individual([4, 4], seed=2)
        a_before = [W.copy() for W in a.weights]
        b_before = [W.copy() for W in b.weights]

        mate(a, b)

        # Pivots [1, 2, 3] on 4 rows: rows 1 and 3 end up swapped
        for i in a.internal_layers:
            np.testing.assert_array_equal(a.weights[i][0], a_before[i][0])
            np.testing.assert_array_equal(a.weights[i][1], b_before[i][1])
            np.testing.assert_array_equal(a.weights[i][2], a_before[i][2])
            np.testing.assert_array_equal(a.weights[i][3], b_before[i][3])
            np.testing.assert_array_equal(b.weights[i][1], a_before[i][1])
        np.testing.assert_array_equal(a.weights[-1], a_before[-1])
        np.testing.assert_array_equal(b.weights[-1], b_before[-1])

    def test_mate_mismatched_shapes(self):
        """Test mate keeps every weight matrix shape when parents differ."""
        a = make_individual([6, 2, 5], seed=1)
        b = make_individual([3, 4], seed=2)
        shapes_a = [W.shape for W in a.weights]
        shapes_b = [W.shape for W in b.weights]
        deep_layer = a.weights[2].copy()

        mate(a, b)

        assert [W.shape for W in a.weights] == shapes_a
        assert [W.shape for W in b.weights] == shapes_b
        # Layer 2 of a has no counterpart among b's internal layers
        np.testing.assert_array_equal(a.weights[2], deep_layer)

    def test_mutate_zero_rate(self):
        """Test rate 0 changes nothing."""
        individual = make_individual([4, 3], activation='relu')
        individual.genome.binary_thresh = 0.4
        before = individual.copy()

        mutate(individual, rate=0.0, rng=RandomSource(0))

        assert individual.genome == before.genome
        for W, W2 in zip(individual.weights, before.weights):
            np.testing.assert_array_equal(W, W2)

    def test_mutate_scales_selected_values(self):
        """Test every internal value moves by exactly (1 +/- rate) at rate 1."""
        individual = make_individual([3, 3])
        before = individual.copy()

        mutate(individual, rate=1.0, rng=RandomSource(1))

        for i in individual.internal_layers:
            ratio_ok = np.isclose(individual.weights[i], 2 * before.weights[i]) | np.isclose(
                individual.weights[i], 0.0
            )
            assert ratio_ok.all()
        np.testing.assert_array_equal(individual.weights[-1], before.weights[-1])

    def test_mutate_keeps_zero_weights(self):
        individual = make_individual([4])
        individual.weights[0][:] = 0.0
        individual.biases[0][:] = 0.0

        mutate(individual, rate=0.5, rng=RandomSource(2))

        assert not individual.weights[0].any()
        assert not individual.biases[0].any()

    def test_mutate_updates_train_options(self):
        """Test the training options mirror follows the genome."""
        individual = make_individual([2])
        for seed in range(5):
            mutate(individual, rate=0.5, rng=RandomSource(seed))
            assert individual.train_options['activation'] == individual.genome.activation
            assert individual.train_options['binary_thresh'] == individual.genome.binary_thresh
            assert individual.train_options['leaky_relu_alpha'] == individual.genome.leaky_relu_alpha

    def test_mutate_alpha_stays_in_range(self):
        """Test leaky_relu_alpha reverses direction instead of passing 1."""
        individual = make_individual([2])
        individual.genome.leaky_relu_alpha = 0.99
        for seed in range(20):
            mutate(individual, rate=0.5, rng=RandomSource(seed))
            assert 0 <= individual.genome.leaky_relu_alpha <= 1

    def test_mutate_mostly_keeps_activation(self):
        changed = 0
        for seed in range(200):
            individual = make_individual([2], activation='tanh')
            mutate(individual, rate=0.1, rng=RandomSource(seed))
            changed += individual.genome.activation != 'tanh'
        assert changed < 40

    def test_breed_size(self):
        """Test breed always returns population_size individuals."""
        elite = [make_individual([2], seed=s) for s in range(3)]
        for size in (2, 3, 7, 10):
            config = EvolutionConfig(population_size=size, max_layers=2, max_neurons=3)
            population = breed(elite, DataSizes(1, 1), config, rng=RandomSource(size), generation=1)
            assert len(population) == size
            assert population.generation == 1

    def test_breed_lineage_and_independence(self):
        """Test children record parents and never alias the elite."""
        elite = [make_individual([2], seed=s) for s in range(2)]
        elite_ids = {ind.individual_id for ind in elite}
        elite_weights = [ind.weights[0].copy() for ind in elite]
        config = EvolutionConfig(population_size=6, mix_rands=1.0, max_layers=2, max_neurons=3)

        population = breed(elite, DataSizes(1, 1), config, rng=RandomSource(0), generation=2)

        for child in population:
            assert set(child.parents) <= elite_ids
            assert child.individual_id.startswith('child_gen2_')
            assert all(child.weights[0] is not ind.weights[0] for ind in elite)
        for ind, weights in zip(elite, elite_weights):
            np.testing.assert_array_equal(ind.weights[0], weights)

    def test_breed_no_mixing(self):
        """Test mix_rands 0 produces only random individuals."""
        elite = [make_individual([2], seed=s) for s in range(2)]
        config = EvolutionConfig(population_size=5, mix_rands=0.0, max_layers=2, max_neurons=3)
        population = breed(elite, DataSizes(1, 1), config, rng=RandomSource(0))

        assert all(ind.parents == ('random', 'random') for ind in population)

    def test_breed_empty_elite(self):
        config = EvolutionConfig(population_size=4, max_layers=2, max_neurons=3)
        population = breed([], DataSizes(1, 1), config, rng=RandomSource(0))
        assert len(population) == 4


class TestConfig:
    """Tests for EvolutionConfig."""

    def test_defaults(self):
        config = EvolutionConfig()
        assert config.population_size == 128
        assert config.elitism == pytest.approx(0.1)
        assert config.mix_rands == pytest.approx(1 / 3)
        assert config.max_generations == 1024
        assert config.error_threshold == 0.005

    def test_normalized_degrades_population_size(self):
        config = EvolutionConfig(population_size=0).normalized()
        assert config.population_size == MIN_POPULATION_SIZE

    def test_normalized_returns_copy(self):
        config = EvolutionConfig(population_size=-3)
        config.normalized()
        assert config.population_size == -3

    @pytest.mark.parametrize('kwargs', [
        {'elitism': 0},
        {'elitism': 1.5},
        {'mix_rands': -0.1},
        {'mutation_rate': 2},
        {'max_generations': 0},
        {'max_layers': 0},
        {'callback_period': 0},
        {'n_workers': 0},
        {'training': TrainingOptions(learning_rate=-1)},
    ])
    def test_normalized_rejects(self, kwargs):
        with pytest.raises(InvalidConfigurationError):
            EvolutionConfig(**kwargs).normalized()

    def test_round_trip(self):
        config = EvolutionConfig(population_size=9, training=TrainingOptions(iterations=7), seed=3)
        restored = EvolutionConfig.from_dict(config.to_dict())

        assert restored.population_size == 9
        assert restored.training.iterations == 7
        assert restored.seed == 3


class TestCheckpoint:
    """Tests for history and checkpointing."""

    def test_evolution_history(self):
        history = EvolutionHistory()
        population = [make_individual([n]) for n in (1, 2, 3)]
        for ind, error in zip(population, (0.1, 0.2, 0.3)):
            ind.error = error
            ind.fitness = 0.5

        stats = history.record_generation(1, population, failed=2)

        assert stats.best_error == pytest.approx(0.1)
        assert stats.mean_error == pytest.approx(0.2)
        assert stats.failed_evaluations == 2
        assert stats.best_id == population[0].individual_id
        assert history.error_trajectory == [pytest.approx(0.1)]
        assert history.total_failures == 2

    def test_history_empty_generation(self):
        history = EvolutionHistory()
        stats = history.record_generation(1, [], failed=4)
        assert stats.best_error == math.inf
        assert stats.best_id is None

    def test_history_round_trip(self):
        history = EvolutionHistory()
        history.record_generation(1, [make_individual([2])])
        restored = EvolutionHistory.from_dict(history.to_dict())
        assert len(restored) == 1
        assert restored.generations[0].generation == 1

    def test_evolution_checkpoint(self, tmp_path):
        """Test checkpoint save/load."""
        best = make_individual([3])
        checkpoint = EvolutionCheckpoint(
            run_id='test_run',
            generation=5,
            status='running',
            config=EvolutionConfig(population_size=4).to_dict(),
            best=best.to_dict(),
            history=EvolutionHistory().to_dict(),
        )

        path = checkpoint.save(tmp_path / 'checkpoints' / 'checkpoint.json')
        loaded = EvolutionCheckpoint.load(path)

        assert loaded.run_id == 'test_run'
        assert loaded.generation == 5
        assert loaded.config['training']['timeout'] == math.inf
        assert loaded.get_best().individual_id == best.individual_id
        assert len(loaded.get_history()) == 0

    def test_save_and_load_individual(self, tmp_path):
        individual = make_individual([4, 2], activation='leaky-relu')
        path = save_individual(individual, tmp_path / 'best.json')
        loaded = load_individual(path)

        assert loaded.genome == individual.genome
        np.testing.assert_allclose(loaded.run([1.0]), individual.run([1.0]))

    def test_generate_run_id(self):
        assert generate_run_id().startswith('evo_')
