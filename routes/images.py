# routes/images.py
from flask import Blueprint, request, jsonify, send_file, url_for, current_app
from PIL import Image
import math, os, uuid

from dsp.errors import InvalidImageProperties
from dsp.filters import Convolution, GaussianBlur, SharpenEx, blur, mean
from dsp.image import Rectangle
from dsp.pipeline import apply_pipeline
from utils.imaging import allowed, from_pil, pil_to_bytes, to_pil

bp = Blueprint("images", __name__)

@bp.errorhandler(ValueError)
def bad_parameters(exc):
    # kernel, divisor, format and parameter parsing errors
    current_app.logger.warning("%s rejected: %s", request.path, exc)
    return jsonify({"ok": False, "error": str(exc)}), 400

def _load_upload(filename):
    """Returns (image buffer, None) or (None, error response)."""
    if not isinstance(filename, str) or not allowed(filename, current_app.config["ALLOWED_EXTS"]):
        return None, ("Invalid filename", 400)
    # uploads are stored flat under UPLOAD_DIR
    if os.path.basename(filename) != filename:
        return None, ("Invalid filename", 400)
    src_path = os.path.join(current_app.config["UPLOAD_DIR"], filename)
    if not os.path.exists(src_path):
        return None, ("File not found", 404)
    with Image.open(src_path) as pil_img:
        return from_pil(pil_img), None

def _param(data, key, default, cast):
    """
    Numeric field or its default. null only stands for "not set" where the
    default is None; lists, text and non-finite numbers are rejected.
    """
    value = data.get(key, default)
    if value is None and default is None:
        return None
    try:
        out = cast(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidImageProperties(f"Invalid value for {key}: {value!r}") from exc
    if not math.isfinite(out):
        raise InvalidImageProperties(f"Invalid value for {key}: {value!r}")
    return out

def _region(data):
    region = data.get("region")
    if region is None:
        return None
    try:
        return Rectangle(int(region["left"]), int(region["top"]),
                         int(region["width"]), int(region["height"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidImageProperties("Invalid region, expected left/top/width/height") from exc

def _respond(image, tag):
    """
    Preview: returns PNG blob
    Commit:  ?commit=1 -> saves to results, returns JSON {ok, url, filename}
    """
    out_pil = to_pil(image)
    if request.args.get("commit", "0") != "1":
        return send_file(pil_to_bytes(out_pil, fmt="PNG"),
                         mimetype="image/png",
                         as_attachment=False,
                         download_name="preview.png")

    file_id = f"{uuid.uuid4().hex}_{tag}.png"
    out_pil.save(os.path.join(current_app.config["RESULT_DIR"], file_id), format="PNG")
    return jsonify({
        "ok": True,
        "filename": file_id,
        "url": url_for("static", filename=f"results/{file_id}")
    })

@bp.get("/filters")
def list_filters():
    cfg = current_app.config
    return jsonify({
        "mean": {"size": 3},
        "blur": {"size": 5},
        "gaussian": {"sigma": cfg["GAUSSIAN_SIGMA"], "size": cfg["GAUSSIAN_SIZE"]},
        "sharpen": {"sigma": cfg["SHARPEN_SIGMA"], "size": cfg["SHARPEN_SIZE"]},
        "convolution": {"kernel": "odd square, 3..25", "divisor": "optional, non-zero",
                        "dynamic_edges": True},
    })

@bp.post("/upload")
def upload():
    if "image" not in request.files:
        return "No file part", 400
    f = request.files["image"]
    if f.filename == "" or not allowed(f.filename, current_app.config["ALLOWED_EXTS"]):
        return "Invalid file", 400

    ext = f.filename.rsplit(".", 1)[1].lower()
    file_id = f"{uuid.uuid4().hex}.{ext}"
    save_path = os.path.join(current_app.config["UPLOAD_DIR"], file_id)
    f.save(save_path)

    return jsonify({
        "ok": True,
        "filename": file_id,
        "url": url_for("static", filename=f"uploads/{file_id}")
    })

# -------- APPLY ENDPOINTS --------

@bp.post("/apply/mean")
def apply_mean():
    data = request.get_json(silent=True) or {}
    image, err = _load_upload(data.get("filename"))
    if err:
        return err
    mean().apply_in_place(image, _region(data))
    return _respond(image, "mean")

@bp.post("/apply/blur")
def apply_blur():
    data = request.get_json(silent=True) or {}
    image, err = _load_upload(data.get("filename"))
    if err:
        return err
    blur().apply_in_place(image, _region(data))
    return _respond(image, "blur")

@bp.post("/apply/gaussian")
def apply_gaussian():
    data = request.get_json(silent=True) or {}
    sigma = _param(data, "sigma", current_app.config["GAUSSIAN_SIGMA"], float)  # 0.5..5
    size = _param(data, "size", current_app.config["GAUSSIAN_SIZE"], int)  # 3..21
    image, err = _load_upload(data.get("filename"))
    if err:
        return err
    filt = GaussianBlur(sigma, size)
    filt.apply_in_place(image, _region(data))
    return _respond(image, f"gauss_s{filt.sigma:.1f}_k{filt.size}")

@bp.post("/apply/sharpen")
def apply_sharpen():
    data = request.get_json(silent=True) or {}
    sigma = _param(data, "sigma", current_app.config["SHARPEN_SIGMA"], float)
    size = _param(data, "size", current_app.config["SHARPEN_SIZE"], int)
    image, err = _load_upload(data.get("filename"))
    if err:
        return err
    filt = SharpenEx(sigma, size)
    filt.apply_in_place(image, _region(data))
    return _respond(image, f"sharpen_s{filt.sigma:.1f}_k{filt.size}")

@bp.post("/apply/convolution")
def apply_convolution():
    data = request.get_json(silent=True) or {}
    kernel = data.get("kernel")
    if kernel is None:
        return jsonify({"ok": False, "error": "Missing kernel"}), 400
    filt = Convolution(kernel, data.get("divisor"))
    filt.dynamic_divisor_for_edges = bool(data.get("dynamic_edges", True))
    image, err = _load_upload(data.get("filename"))
    if err:
        return err
    filt.apply_in_place(image, _region(data))
    return _respond(image, f"conv_k{filt.spec.size}")

@bp.post("/apply/pipeline")
def apply_pipeline_route():
    data = request.get_json(silent=True) or {}
    image, err = _load_upload(data.get("filename"))
    if err:
        return err

    out = apply_pipeline(image, {
        "mean_iterations": _param(data, "mean_iterations", None, int),
        "blur": bool(data.get("blur")),
        "gaussian_sigma": _param(data, "gaussian_sigma", None, float),
        "gaussian_size": _param(data, "gaussian_size", None, int),
        "sharpen_sigma": _param(data, "sharpen_sigma", None, float),
        "sharpen_size": _param(data, "sharpen_size", None, int),
    })
    return _respond(out, "pipeline")
