from torch.utils.data import Dataset

from data_prep import downsample
from sr_patches import input_patch, target_block


class PatchPairDataset(Dataset):
    """
    Training pairs for one image.

    Item i belongs to anchor (x, y) of the downsampled image in row-major
    order. Its input is the neighbourhood of (x, y) in the downsampled image,
    its target the scale x scale block at (x * scale, y * scale) in the
    original image.
    """
    def __init__(self, hr_image, scale_factor=2, lr_image=None):
        self.hr_image = hr_image
        self.scale_factor = scale_factor
        self.lr_image = lr_image if lr_image is not None else downsample(hr_image, scale_factor)

        lr_h, lr_w = self.lr_image.shape[:2]
        hr_h, hr_w = hr_image.shape[:2]
        # every target block must start inside the original image
        if (lr_w - 1) * scale_factor >= hr_w or (lr_h - 1) * scale_factor >= hr_h:
            raise ValueError(
                f"low-res size {lr_w}x{lr_h} does not match {hr_w}x{hr_h} at scale {scale_factor}"
            )

    @property
    def lr_size(self):
        h, w = self.lr_image.shape[:2]
        return w, h

    def __len__(self):
        w, h = self.lr_size
        return w * h

    def anchor(self, idx):
        w, _ = self.lr_size
        y, x = divmod(idx, w)
        return x, y

    def target_anchor(self, idx):
        x, y = self.anchor(idx)
        return x * self.scale_factor, y * self.scale_factor

    def __getitem__(self, idx):
        if not 0 <= idx < len(self):
            raise IndexError(idx)
        lr_patch = input_patch(self.lr_image, self.anchor(idx))
        hr_block = target_block(self.hr_image, self.target_anchor(idx), self.scale_factor)
        return lr_patch, hr_block

    def __iter__(self):
        for idx in range(len(self)):
            yield self[idx]
