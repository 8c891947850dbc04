import gradio as gr
import numpy as np

from sr_checkpoint import open_model
from sr_config import MODEL_DIR, SCALE_FACTOR
from upscale import apply_passes


def upscale_image(input_img, model, passes=1):
    # input_img: RGB NumPy array [H, W, 3], uint8 as Gradio delivers it
    image = np.asarray(input_img)[:, :, :3].astype(np.float32) / 255.0
    result = apply_passes(image, model, int(passes))
    return np.clip(result * 255.0 + 0.5, 0, 255).astype(np.uint8)


def build_demo(model):
    return gr.Interface(
        fn=lambda img, passes: upscale_image(img, model, passes),
        inputs=[
            gr.Image(type="numpy", label="Low resolution image"),
            gr.Slider(1, 3, value=1, step=1, label="Passes"),
        ],
        outputs=gr.Image(type="numpy", label="Upscaled image"),
        title=f"Patch Upscaler (x{model.scale_factor} per pass)",
    )


if __name__ == "__main__":
    model, _ = open_model(MODEL_DIR, scale_factor=SCALE_FACTOR)
    build_demo(model).launch()
