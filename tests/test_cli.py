import numpy as np
import pytest
import SimpleITK as sitk

from bodystitch import stitch_volumes
from bodystitch.cli import main, split_paths


@pytest.fixture
def image_files(two_volumes, tmp_path):
    a, b = two_volumes
    path_a = tmp_path / "a.mha"
    path_b = tmp_path / "b.mha"
    sitk.WriteImage(a, str(path_a))
    sitk.WriteImage(b, str(path_b))
    return str(path_a), str(path_b)


class TestSplitPaths:
    def test_tokens_with_several_paths(self):
        assert split_paths(["a.nii b.nii", "c.nii"]) == ["a.nii", "b.nii", "c.nii"]


class TestMain:
    def test_no_arguments_prints_help(self, capsys):
        assert main([]) == 0
        assert "--images" in capsys.readouterr().out

    def test_stitches_to_output(self, image_files, tmp_path, capsys):
        out = tmp_path / "out" / "body.mha"
        assert main(["-i", *image_files, "-o", str(out)]) == 0

        result = sitk.ReadImage(str(out))
        assert result.GetSize() == (10, 10, 14)
        assert result.GetPixelID() == sitk.sitkFloat32

        printed = capsys.readouterr().out
        assert "stitching image..." in printed
        assert "done. took" in printed

    def test_single_token_list_margin_and_averaging(self, image_files, tmp_path):
        out = tmp_path / "body.mha"
        assert main(["-i", " ".join(image_files), "-o", str(out), "-m", "2", "-a"]) == 0

        result = sitk.ReadImage(str(out))
        assert result.GetSize()[2] == 10
        assert result.GetOrigin()[2] == pytest.approx(2.0)

    def test_preview(self, image_files, tmp_path):
        out = tmp_path / "body.mha"
        preview = tmp_path / "body.png"
        assert main(["-i", *image_files, "-o", str(out), "--preview", str(preview)]) == 0
        assert preview.exists()

    def test_single_image_is_an_error(self, image_files, tmp_path, capsys):
        out = tmp_path / "body.mha"
        assert main(["-i", image_files[0], "-o", str(out)]) == 1
        assert not out.exists()
        assert "at least 2" in capsys.readouterr().out

    def test_missing_input_is_an_error(self, image_files, tmp_path):
        out = tmp_path / "body.mha"
        assert main(["-i", image_files[0], str(tmp_path / "nope.mha"), "-o", str(out)]) == 1

    def test_output_is_required(self, image_files):
        with pytest.raises(SystemExit):
            main(["-i", *image_files])

    def test_negative_margin_is_rejected(self, image_files, tmp_path):
        with pytest.raises(SystemExit):
            main(["-i", *image_files, "-o", str(tmp_path / "x.mha"), "-m", "-1"])

    def test_output_matches_library(self, image_files, tmp_path, two_volumes):
        out = tmp_path / "body.mha"
        main(["-i", *image_files, "-o", str(out), "-a"])
        expected = stitch_volumes(list(two_volumes), average_overlap=True)

        np.testing.assert_allclose(
            sitk.GetArrayFromImage(sitk.ReadImage(str(out))),
            sitk.GetArrayFromImage(expected),
            atol=1e-5,
        )
