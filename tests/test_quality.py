import pytest

from catalog_sync.quality import CAM_RANK, quality_score, sort_by_quality


@pytest.mark.parametrize(
    "label, expected",
    [
        ("1080p", 1080),
        ("WEB-DL 720p", 720),
        ("4K UHD", 2160),
        ("BDRip 1080", 1080),
        ("CAMRip", CAM_RANK),
        ("TS", CAM_RANK),
        ("HD", 1),
        ("", 0),
        (None, 0),
    ],
)
def test_quality_score(label, expected):
    assert quality_score(label) == expected


def test_cam_ranks_below_every_legitimate_label():
    assert quality_score("CAMRip") < quality_score("") < quality_score("HD") < quality_score("480p")


def test_sort_by_quality_best_first_and_stable():
    labels = ["HD", "CAMRip", "720p", "1080p", "HDRip"]

    ordered = sort_by_quality(labels, key=lambda x: x)

    assert ordered == ["1080p", "720p", "HD", "HDRip", "CAMRip"]
