"""Tests for the image model."""

import numpy as np
import pytest

from photoproof.errors import ConfigurationError, SerializationError
from photoproof.image import Image, create, encode, equals, copy


class TestCreate:
    """Tests for image construction."""

    def test_constant_fill(self):
        """Constant fill should give an N x N matrix of the fill value."""
        img = create(3)
        assert img.n == 3
        assert img.pixels.tolist() == [[5, 5, 5]] * 3

    def test_random_fill_is_seeded(self):
        """The same seed should give the same random image."""
        a = Image.create(8, fill="random", seed=7)
        b = Image.create(8, fill="random", seed=7)
        assert a == b
        assert a.pixels.min() >= 0 and a.pixels.max() <= 255

    def test_unknown_fill_policy(self):
        with pytest.raises(ConfigurationError):
            Image.create(3, fill="gradient")

    @pytest.mark.parametrize("matrix", [
        [[1, 2, 3], [4, 5, 6]],
        [[256, 0], [0, 0]],
        [[-1, 0], [0, 0]],
        [[0.5, 0], [0, 0]],
        [],
        [[1, 2], [3]],
    ])
    def test_rejects_invalid_matrix(self, matrix):
        """Non-square, out-of-range, non-integer or ragged matrices are rejected."""
        with pytest.raises(ConfigurationError):
            Image(matrix)

    @pytest.mark.parametrize("metadata", [
        {"flag": True},
        {"nested": {"a": 1}},
        {"items": [1, 2.5]},
        {1: "x"},
    ])
    def test_rejects_invalid_metadata(self, metadata):
        """Metadata values must be str, int or a sequence of those."""
        with pytest.raises(ConfigurationError):
            Image([[0]], metadata)

    def test_sequence_metadata_is_normalized(self):
        img = Image([[0]], {"tags": ["a", 1]})
        assert img.get("tags") == ("a", 1)


class TestImmutability:
    """Images never change after construction."""

    def test_pixels_read_only(self):
        img = create(2)
        with pytest.raises(ValueError):
            img.pixels[0, 0] = 9

    def test_source_array_not_shared(self):
        source = np.zeros((2, 2), dtype=np.int64)
        img = Image(source)
        source[0, 0] = 200
        assert img.pixels[0, 0] == 0

    def test_metadata_copy_returned(self):
        img = Image([[0]], {"author": "A"})
        md = img.metadata
        md["author"] = "B"
        assert img.get("author") == "A"

    def test_copy_is_deep_and_equal(self):
        img = Image([[1, 2], [3, 4]], {"author": "A"})
        dup = copy(img)
        assert equals(img, dup)
        assert dup.pixels is not img.pixels


class TestEncoding:
    """Tests for the canonical encoding."""

    def test_exact_bytes(self):
        """Keys are sorted and separators compact."""
        img = Image([[1, 2], [3, 4]], {"b": 1, "a": "x"})
        assert encode(img) == b'{"matrix":[[1,2],[3,4]],"metadata":{"a":"x","b":1}}'

    def test_metadata_order_does_not_matter(self):
        a = Image([[0]], {"author": "A", "length": 5})
        b = Image([[0]], {"length": 5, "author": "A"})
        assert a.encode() == b.encode()
        assert a.digest() == b.digest()

    def test_decode(self):
        img = Image([[9, 8], [7, 6]], {"author": "A", "tags": ("x", "y")})
        assert Image.decode(img.encode()) == img

    @pytest.mark.parametrize("data", [
        b"not json",
        b'{"matrix": [[1]]}',
        b'{"matrix": 1, "metadata": {}}',
    ])
    def test_decode_malformed(self, data):
        with pytest.raises(SerializationError):
            Image.decode(data)


class TestEquality:
    """Structural, pixel-exact and metadata-exact equality."""

    def test_pixel_difference(self):
        a = Image([[1, 2], [3, 4]])
        b = Image([[1, 2], [3, 5]])
        assert not equals(a, b)

    def test_metadata_difference(self):
        a = Image([[1]], {"author": "A"})
        b = Image([[1]], {"author": "B"})
        assert not equals(a, b)

    def test_size_difference(self):
        assert not equals(create(2), create(3))

    def test_not_an_image(self):
        assert not create(2).equals("image")


class TestFiles:
    """Photo I/O through Pillow."""

    def test_save_and_load(self, tmp_path):
        img = Image.create(4, fill="random", seed=1)
        path = tmp_path / "photo.png"
        img.save(str(path))
        loaded = Image.from_file(str(path), 4)
        assert np.array_equal(loaded.pixels, img.pixels)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SerializationError):
            Image.from_file(str(tmp_path / "missing.png"), 4)
