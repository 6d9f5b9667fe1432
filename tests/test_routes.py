import io
import os
import tempfile
import unittest

import numpy as np
from PIL import Image

from app import create_app
from config import Config


def _png(arr):
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    buf.seek(0)
    return buf


class TestImageRoutes(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        tmp = self._tmp.name

        class TestConfig(Config):
            TESTING = True
            UPLOAD_DIR = os.path.join(tmp, "uploads")
            RESULT_DIR = os.path.join(tmp, "results")
            LOG_LEVEL = "WARNING"

        self.app = create_app(TestConfig)
        self.client = self.app.test_client()
        self.filename = self._upload(np.full((6, 6), 100, dtype=np.uint8))

    def tearDown(self):
        self._tmp.cleanup()

    def _upload(self, arr):
        resp = self.client.post("/upload", data={"image": (_png(arr), "x.png")},
                                content_type="multipart/form-data")
        self.assertEqual(resp.status_code, 200)
        return resp.get_json()["filename"]

    def _result(self, resp):
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.mimetype, "image/png")
        return np.asarray(Image.open(io.BytesIO(resp.data)))

    def test_list_filters(self):
        body = self.client.get("/filters").get_json()
        self.assertEqual(body["gaussian"], {"sigma": 1.4, "size": 5})

    def test_mean_keeps_uniform_image(self):
        out = self._result(self.client.post("/apply/mean", json={"filename": self.filename}))
        np.testing.assert_array_equal(out, np.full((6, 6), 100))

    def test_gaussian_region(self):
        resp = self.client.post("/apply/gaussian", json={
            "filename": self.filename, "sigma": 1.4, "size": 5,
            "region": {"left": 0, "top": 0, "width": 3, "height": 6},
        })
        out = self._result(resp)
        self.assertLess(int(out[0, 0]), 100)
        np.testing.assert_array_equal(out[:, 3:], np.full((6, 3), 100))

    def test_custom_convolution(self):
        resp = self.client.post("/apply/convolution", json={
            "filename": self.filename,
            "kernel": [[0, 0, 0], [0, 1, 0], [0, 0, 0]],
            "divisor": 2,
        })
        out = self._result(resp)
        np.testing.assert_array_equal(out[1:5, 1:5], np.full((4, 4), 50))
        # border windows apply only the center weight, so the divisor becomes 1
        ring = np.ones((6, 6), dtype=bool)
        ring[1:5, 1:5] = False
        self.assertTrue(np.all(out[ring] == 100))

    def test_custom_convolution_fixed_edges(self):
        resp = self.client.post("/apply/convolution", json={
            "filename": self.filename,
            "kernel": [[0, 0, 0], [0, 1, 0], [0, 0, 0]],
            "divisor": 2,
            "dynamic_edges": False,
        })
        np.testing.assert_array_equal(self._result(resp), np.full((6, 6), 50))

    def test_non_numeric_divisor(self):
        resp = self.client.post("/apply/convolution", json={
            "filename": self.filename, "kernel": [[1, 1, 1]] * 3, "divisor": [2],
        })
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.get_json()["ok"])

    def test_null_and_malformed_parameters(self):
        for path, body in (
            ("/apply/gaussian", {"sigma": None}),
            ("/apply/gaussian", {"size": "five"}),
            ("/apply/sharpen", {"size": None}),
            ("/apply/sharpen", {"sigma": [1.4]}),
            ("/apply/pipeline", {"mean_iterations": [2]}),
            ("/apply/pipeline", {"gaussian_sigma": "wide"}),
        ):
            body["filename"] = self.filename
            resp = self.client.post(path, json=body)
            self.assertEqual(resp.status_code, 400, (path, body))
            self.assertFalse(resp.get_json()["ok"])

    def test_pipeline_null_means_stage_off(self):
        out = self._result(self.client.post("/apply/pipeline", json={
            "filename": self.filename, "gaussian_sigma": None, "mean_iterations": None,
        }))
        np.testing.assert_array_equal(out, np.full((6, 6), 100))

    def test_filename_outside_upload_dir(self):
        outside = os.path.join(self._tmp.name, "secret.png")
        Image.fromarray(np.zeros((4, 4), dtype=np.uint8)).save(outside)
        for name in ("../secret.png", os.path.join("..", "secret.png"), outside, "sub/x.png"):
            resp = self.client.post("/apply/mean", json={"filename": name})
            self.assertEqual(resp.status_code, 400, name)
        resp = self.client.post("/apply/mean", json={"filename": ["x.png"]})
        self.assertEqual(resp.status_code, 400)

    def test_invalid_kernel(self):
        resp = self.client.post("/apply/convolution", json={
            "filename": self.filename, "kernel": [[1, 1], [1, 1]],
        })
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.get_json()["ok"])

    def test_zero_divisor(self):
        resp = self.client.post("/apply/convolution", json={
            "filename": self.filename, "kernel": [[1, 1, 1]] * 3, "divisor": 0,
        })
        self.assertEqual(resp.status_code, 400)
        self.assertIn("zero", resp.get_json()["error"])

    def test_bad_region(self):
        resp = self.client.post("/apply/mean", json={"filename": self.filename, "region": {"left": 1}})
        self.assertEqual(resp.status_code, 400)

    def test_missing_file(self):
        resp = self.client.post("/apply/blur", json={"filename": "nope.png"})
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post("/apply/blur", json={"filename": "nope.exe"})
        self.assertEqual(resp.status_code, 400)

    def test_sharpen_and_pipeline(self):
        self._result(self.client.post("/apply/sharpen", json={"filename": self.filename}))
        out = self._result(self.client.post("/apply/pipeline", json={
            "filename": self.filename, "mean_iterations": 2, "blur": True,
        }))
        np.testing.assert_array_equal(out, np.full((6, 6), 100))

    def test_commit_saves_result(self):
        resp = self.client.post("/apply/mean?commit=1", json={"filename": self.filename})
        body = resp.get_json()
        self.assertTrue(body["ok"])
        path = os.path.join(self.app.config["RESULT_DIR"], body["filename"])
        self.assertTrue(os.path.exists(path))
