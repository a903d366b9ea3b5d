from __future__ import annotations

import importlib.util
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for conversion tests")
class ContainerConversionTests(unittest.TestCase):
    def test_scalar_converts_to_rank_zero_array(self) -> None:
        from lit_jax import LiteralContainer, transfer_stats
        from lit_jax.kinds import ElementKind, jax_dtype

        transfer_stats(reset=True)
        out = LiteralContainer.from_scalar(7).convert_to_array()
        self.assertEqual(out.shape, ())
        self.assertEqual(int(out), 7)
        self.assertEqual(out.dtype, jax_dtype(ElementKind.INT64))

        stats = transfer_stats()
        self.assertEqual(stats["direct_scalars"], 1)
        self.assertEqual(stats["host_allocations"], 0)

    def test_scalar_kinds_survive_conversion(self) -> None:
        import numpy as np

        from lit_jax import LiteralContainer
        from lit_jax.kinds import ElementKind, jax_dtype

        cases = [
            (True, None, ElementKind.BOOL),
            (2.5, "float32", ElementKind.FLOAT32),
            (0.5, "bfloat16", ElementKind.BFLOAT16),
            (1 + 2j, "complex64", ElementKind.COMPLEX64),
        ]
        for value, kind, expected in cases:
            with self.subTest(value=value, kind=kind):
                out = LiteralContainer.from_scalar(value, kind).convert_to_array()
                self.assertEqual(out.dtype, jax_dtype(expected))
                self.assertEqual(np.asarray(out).item(), value)

    def test_nested_list_round_trips_in_row_major_order(self) -> None:
        import numpy as np

        from lit_jax import literal

        values = [
            [[1, 2, 3], [4, 5, 6]],
            [[7, 8, 9], [10, 11, 12]],
        ]
        lit = literal(values)
        out = lit.convert_to_array()
        self.assertEqual(tuple(out.shape), lit.sizes())
        self.assertEqual(np.asarray(out).tolist(), values)
        self.assertEqual(np.asarray(out).ravel().tolist(), list(range(1, 13)))

    def test_round_trip_for_each_kind(self) -> None:
        import numpy as np

        from lit_jax import literal
        from lit_jax.kinds import ElementKind, jax_dtype

        cases = [
            ([[True, False], [False, True]], None, ElementKind.BOOL),
            ([[0.5, -1.25], [3.0, 8.0]], None, ElementKind.FLOAT64),
            ([[0.5, -1.25], [3.0, 8.0]], "float16", ElementKind.FLOAT16),
            ([[0.5, -1.25], [3.0, 8.0]], "bfloat16", ElementKind.BFLOAT16),
            ([[1, 2], [250, 0]], "uint8", ElementKind.UINT8),
            ([[1j, 2], [3, 4 - 1j]], "complex64", ElementKind.COMPLEX64),
        ]
        for values, kind, expected in cases:
            with self.subTest(kind=expected):
                lit = literal(values, kind=kind)
                self.assertIs(lit.element_kind(), expected)
                out = lit.convert_to_array()
                self.assertEqual(out.dtype, jax_dtype(expected))
                self.assertEqual(np.asarray(out).tolist(), values)

    def test_nested_list_moves_with_one_bulk_transfer(self) -> None:
        from lit_jax import literal, transfer_stats

        lit = literal([[[float(i + j + k) for k in range(4)] for j in range(3)] for i in range(5)])
        transfer_stats(reset=True)
        out = lit.convert_to_array()
        stats = transfer_stats()
        self.assertEqual(out.shape, (5, 3, 4))
        self.assertEqual(stats["host_allocations"], 1)
        self.assertEqual(stats["bulk_transfers"], 1)
        self.assertEqual(stats["direct_scalars"], 0)

    def test_dtype_override_is_applied_at_allocation(self) -> None:
        import numpy as np

        from lit_jax import literal
        from lit_jax.kinds import ElementKind, jax_dtype

        out = literal([[1, 2], [3, 4]]).convert_to_array(dtype="float32")
        self.assertEqual(out.dtype, jax_dtype(ElementKind.FLOAT32))
        self.assertEqual(np.asarray(out).tolist(), [[1.0, 2.0], [3.0, 4.0]])

    def test_array_ref_converts_by_bulk_copy(self) -> None:
        import numpy as np

        from lit_jax import LiteralContainer, Placement, transfer_stats
        from lit_jax.kinds import ElementKind, jax_dtype

        lit = LiteralContainer.from_sequence([1, 2, 3])
        self.assertEqual(lit.sizes(), (3,))
        self.assertIs(lit.element_kind(), ElementKind.INT64)

        transfer_stats(reset=True)
        out = lit.convert_to_array(Placement(dtype=ElementKind.FLOAT32))
        self.assertEqual(out.dtype, jax_dtype(ElementKind.FLOAT32))
        self.assertEqual(np.asarray(out).tolist(), [1.0, 2.0, 3.0])
        self.assertEqual(transfer_stats()["bulk_transfers"], 1)
        self.assertEqual(transfer_stats()["host_allocations"], 0)

    def test_array_ref_converts_to_every_device(self) -> None:
        import jax
        import numpy as np

        from lit_jax import LiteralContainer

        lit = LiteralContainer.from_sequence([1, 2, 3])
        for device in jax.devices():
            with self.subTest(device=str(device)):
                out = lit.convert_to_array(device=device)
                self.assertEqual(out.devices(), {device})
                self.assertEqual(np.asarray(out).tolist(), [1, 2, 3])

    def test_explicit_sharding_layout(self) -> None:
        import jax
        import numpy as np
        from jax.sharding import SingleDeviceSharding

        from lit_jax import literal

        device = jax.devices()[0]
        out = literal([[1.0, 2.0], [3.0, 4.0]]).convert_to_array(sharding=SingleDeviceSharding(device))
        self.assertEqual(out.sharding.device_set, {device})
        self.assertEqual(np.asarray(out).tolist(), [[1.0, 2.0], [3.0, 4.0]])

    def test_scalar_lands_on_requested_device(self) -> None:
        import jax

        from lit_jax import LiteralContainer

        device = jax.devices()[-1]
        out = LiteralContainer.from_scalar(1.5).convert_to_array(device=device)
        self.assertEqual(out.devices(), {device})
        self.assertEqual(float(out), 1.5)

    def test_default_container_converts_to_zero_length_array(self) -> None:
        from lit_jax import LiteralContainer
        from lit_jax.runtime import default_kind
        from lit_jax.kinds import jax_dtype

        out = LiteralContainer().convert_to_array()
        self.assertEqual(out.shape, (0,))
        self.assertEqual(out.dtype, jax_dtype(default_kind()))

    def test_list_of_empty_literals(self) -> None:
        from lit_jax import LiteralContainer

        lit = LiteralContainer.from_children([LiteralContainer(), LiteralContainer()])
        self.assertEqual(lit.sizes(), (2, 0))
        self.assertEqual(lit.convert_to_array().shape, (2, 0))

    def test_placement_rejects_device_and_sharding_together(self) -> None:
        import jax
        from jax.sharding import SingleDeviceSharding

        from lit_jax import LiteralPlacementError, Placement

        device = jax.devices()[0]
        with self.assertRaises(LiteralPlacementError):
            Placement(device=device, sharding=SingleDeviceSharding(device))
        with self.assertRaises(LiteralPlacementError):
            Placement(dtype="undefined")

    def test_placement_and_keywords_are_exclusive(self) -> None:
        from lit_jax import LiteralContainer, LiteralPlacementError, Placement

        with self.assertRaises(LiteralPlacementError):
            LiteralContainer.from_scalar(1).convert_to_array(Placement(), dtype="float32")

    def test_fill_writes_outer_dimension_first(self) -> None:
        import numpy as np

        from lit_jax import literal

        lit = literal([[1, 2], [3, 4], [5, 6]])
        buffer = np.zeros((3, 2), dtype=np.int32)
        lit.fill(buffer)
        self.assertEqual(buffer.tolist(), [[1, 2], [3, 4], [5, 6]])

    def test_fill_rejects_mismatched_destination(self) -> None:
        import numpy as np

        from lit_jax import LiteralContainer, LiteralInternalError, literal

        with self.assertRaises(LiteralInternalError):
            literal([[1, 2], [3, 4]]).fill(np.zeros((3, 2), dtype=np.int32))
        with self.assertRaises(LiteralInternalError):
            LiteralContainer.from_scalar(1).fill(np.zeros((2,), dtype=np.int32))
        with self.assertRaises(LiteralInternalError):
            literal([[1, 2]]).fill(np.zeros((), dtype=np.int32))

    def test_array_ref_is_never_filled(self) -> None:
        import numpy as np

        from lit_jax import LiteralContainer, LiteralVariantError

        array_ref = LiteralContainer.from_sequence([1, 2])
        with self.assertRaises(LiteralVariantError):
            array_ref.fill(np.zeros((2,), dtype=np.int32))

        nested = LiteralContainer.from_children([array_ref, array_ref])
        self.assertEqual(nested.sizes(), (2, 2))
        with self.assertRaises(LiteralVariantError):
            nested.convert_to_array()

    def test_values_outside_the_array_dtype_fail_at_construction(self) -> None:
        import numpy as np

        from lit_jax import LiteralKindError, literal
        from lit_jax.kinds import ElementKind, jax_dtype

        if jax_dtype(ElementKind.INT64) == np.dtype(np.int64):
            self.skipTest("64-bit kinds are not narrowed with jax_enable_x64 on")

        cases = [
            ("scalar", 2**40),
            ("list", [[2**40, 1]]),
            ("flat", [2**40, 1]),
            ("scalar_float", 1e300),
            ("list_float", [[1e300, 1.0]]),
            ("flat_float", [1e300, 1.0]),
        ]
        for name, obj in cases:
            with self.subTest(variant=name):
                with self.assertRaises(LiteralKindError):
                    literal(obj)

    def test_values_outside_int64_fail_at_construction(self) -> None:
        from lit_jax import LiteralKindError, literal

        for obj in (2**70, [[2**70, 1]], [2**70, 1]):
            with self.subTest(obj=obj):
                with self.assertRaises(LiteralKindError):
                    literal(obj)

    def test_dtype_override_rejects_out_of_range_values(self) -> None:
        import numpy as np

        from lit_jax import LiteralKindError, literal

        for obj in (300, [[300, 1]], [300, 1]):
            with self.subTest(obj=obj):
                lit = literal(obj)
                with self.assertRaises(LiteralKindError):
                    lit.convert_to_array(dtype="int8")

        fits = literal([[100, -100]]).convert_to_array(dtype="int8")
        self.assertEqual(np.asarray(fits).tolist(), [[100, -100]])

    def test_concurrent_conversions_keep_exact_stats(self) -> None:
        from concurrent.futures import ThreadPoolExecutor

        import numpy as np

        from lit_jax import literal, transfer_stats

        lit = literal([[1.0, 2.0], [3.0, 4.0]])
        transfer_stats(reset=True)
        with ThreadPoolExecutor(max_workers=8) as pool:
            outs = list(pool.map(lambda _: lit.convert_to_array(), range(64)))
        stats = transfer_stats()
        self.assertEqual(stats["bulk_transfers"], 64)
        self.assertEqual(stats["host_allocations"], 64)
        for out in outs:
            self.assertEqual(np.asarray(out).tolist(), [[1.0, 2.0], [3.0, 4.0]])

    def test_conversion_is_repeatable(self) -> None:
        import numpy as np

        from lit_jax import literal

        lit = literal([[1.5, 2.5], [3.5, 4.5]])
        first = np.asarray(lit.convert_to_array())
        second = np.asarray(lit.convert_to_array())
        np.testing.assert_array_equal(first, second)
        self.assertEqual(str(lit), "{{1.5, 2.5}, {3.5, 4.5}}")


if __name__ == "__main__":
    unittest.main()
