import pytest

from services.resizer.models import (
    DimensionExtractionFailure,
    GrammarMismatch,
    MalformedSegmentCount,
    MissingParameterToken,
    TransformParams,
)
from services.resizer.ref_parser import (
    build_ref_destination_key,
    build_ref_source_key,
    find_params_index,
    is_params_segment,
    parse_params,
    parse_ref,
    recover_ref_key,
    split_ref_source_key,
    validate_ref,
)
from services.resizer.urls import key_from_uri

UUID = "c984c70e-a9f9-4cf8-b738-a5467b4dd462"


@pytest.mark.parametrize("ref", [
    "simplytest/w_500,h_500/blue_marble.jpg",
    f"simplytest/{UUID}/w_500,h_500/blue_marble.jpg",
    "simplytest/c_fit,w_300,h_200,e_grayscale/albums/2021/cover.png",
    "simplytest/h_500,c_fit/blue_marble.JPEG",
    "simply+test/w_9999,e_grayscale/blue-marble+1.jpeg",
])
def test_validate_accepts(ref):
    assert validate_ref(ref) is True


@pytest.mark.parametrize("ref", [
    "",
    None,
    "simplytest/blue_marble.jpg",
    "simplytest/w_500/blue_marble.jpg",
    "simplytest/w_500,h_500,c_fit,e_grayscale,c_fit/blue_marble.jpg",
    "simplytest/w_10000,h_500/blue_marble.jpg",
    "simplytest/w_,h_500/blue_marble.jpg",
    "simplytest/w_0,h_0/blue_marble.jpg",
    "simplytest/c_fit,e_grayscale/blue_marble.jpg",
    "simplytest/w_500,h_500/blue_marble.gif",
    "simplytest/w_500,h_500/blue_marble",
    "simplytest/w_500,h_500//blue_marble.jpg",
    "w_500,h_500/blue_marble.jpg",
    "simplytest/w_500,x_1/blue_marble.jpg",
])
def test_validate_rejects(ref):
    assert validate_ref(ref) is False


def test_parse_with_uuid_namespace(settings):
    ref = f"simplytest/{UUID}/w_500,h_500/blue_marble.jpg"
    decoded = parse_ref(ref, settings)

    assert decoded.identity.namespace == f"simplytest/{UUID}"
    assert decoded.identity.prefix == ""
    assert decoded.identity.filename == "blue_marble.jpg"
    assert decoded.params_token == "w_500,h_500"
    assert decoded.params == TransformParams(width=500, height=500, crop=False, grayscale=False)
    assert decoded.source_key == f"simplytest/{UUID}/blue_marble.jpg"
    assert decoded.fallback_uri == f"https://cdn.example.com/simplytest/{UUID}/blue_marble.jpg"


def test_parse_with_path_and_flags(settings):
    decoded = parse_ref("simplytest/c_fit,w_300,h_200,e_grayscale/albums/2021/cover.png", settings)

    assert decoded.identity.namespace == "simplytest"
    assert decoded.identity.prefix == "albums/2021"
    assert decoded.identity.base_name == "cover"
    assert decoded.identity.extension == "png"
    assert decoded.params == TransformParams(width=300, height=200, crop=True, grayscale=True)
    assert decoded.source_key == "simplytest/albums/2021/cover.png"


def test_parse_width_only(settings):
    decoded = parse_ref("simplytest/w_640,e_grayscale/blue_marble.jpg", settings)

    assert decoded.params == TransformParams(width=640, height=0, grayscale=True)


def test_height_only_is_rejected(settings):
    with pytest.raises(MissingParameterToken):
        parse_ref("simplytest/h_500,c_fit/blue_marble.jpg", settings)


def test_parse_rejects_short_ref(settings):
    with pytest.raises(MalformedSegmentCount):
        parse_ref("simplytest/blue_marble.jpg", settings)


def test_parse_rejects_malformed(settings):
    with pytest.raises(GrammarMismatch):
        parse_ref("simplytest/w_500,h_500/blue_marble.gif", settings)


def test_parse_params():
    assert parse_params("w_100,h_50") == TransformParams(width=100, height=50)
    assert parse_params("w_100,w_200") == TransformParams(width=200)

    with pytest.raises(MissingParameterToken):
        parse_params("h_500,e_grayscale")
    with pytest.raises(DimensionExtractionFailure):
        parse_params("w_0,c_fit")


def test_find_params_index():
    assert find_params_index(["simplytest", UUID, "w_1,h_1", "a.jpg"]) == 2
    assert find_params_index(["simplytest", "a.jpg"]) == -1
    assert is_params_segment("c_fit,w_1") is True
    assert is_params_segment("w_1") is False


def test_destination_key_keeps_jpeg(settings):
    decoded = parse_ref("simplytest/albums/w_500,h_500/cover.JPG", settings)

    assert build_ref_destination_key(decoded, "JPEG") == "simplytest/albums/w_500,h_500/cover.JPG"


def test_destination_key_rewrites_png_after_transform(settings):
    decoded = parse_ref("simplytest/w_500,h_500/albums/cover.png", settings)

    assert build_ref_destination_key(decoded, "JPEG") == "simplytest/w_500,h_500/albums/cover.jpg"
    assert build_ref_destination_key(decoded, "PNG") == "simplytest/w_500,h_500/albums/cover.png"
    # decoded result itself is untouched
    assert decoded.identity.extension == "png"


@pytest.mark.parametrize("ref, depth", [
    ("simplytest/w_500,h_500/blue_marble.jpg", 1),
    (f"simplytest/{UUID}/w_500,h_500/blue_marble.jpg", 2),
    ("simplytest/c_fit,w_300,h_200/albums/2021/cover.png", 1),
])
def test_source_identity_round_trip(settings, ref, depth):
    decoded = parse_ref(ref, settings)
    identity = split_ref_source_key(key_from_uri(decoded.fallback_uri), namespace_depth=depth)

    assert identity == decoded.identity
    assert build_ref_source_key(identity) == decoded.source_key


def test_split_ref_source_key_rejects_short_key():
    with pytest.raises(MalformedSegmentCount):
        split_ref_source_key("blue_marble.jpg")


@pytest.mark.parametrize("ref, expected", [
    ("simplytest/h_500,c_fit/blue_marble.jpg", "simplytest/blue_marble.jpg"),
    ("simplytest/w_0,h_0/albums/cover.png", "simplytest/albums/cover.png"),
    ("simplytest/h_500/blue_marble.jpg", "simplytest/blue_marble.jpg"),
    ("simplytest/w_1,h_1/h_photo.jpg", "simplytest/h_photo.jpg"),
    ("simplytest/w_0,h_0/w_archive/a.jpg", "simplytest/w_archive/a.jpg"),
    ("simplytest/w_,e_grayscale/albums/cover.png", "simplytest/albums/cover.png"),
    ("simplytest/w_500,h_500/blue_marble.gif", None),
    ("w_500,h_500/blue_marble.jpg", None),
    ("simplytest/w_500", None),
    ("", None),
])
def test_recover_ref_key(ref, expected):
    assert recover_ref_key(ref) == expected
