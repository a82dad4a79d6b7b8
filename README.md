# camconv

Pure-Python conversion of raw camera frame buffers into baseline JPEG and
BMP images. No third-party dependencies.

Source pixel formats (`camconv.formats.PixelFormat`):

- `RGB565` – two bytes per pixel, high byte first
- `RGB888` – three bytes per pixel
- `YUV422` – packed Y0 U Y1 V, two pixels per four bytes
- `GRAYSCALE` – one byte per pixel
- `JPEG` – listed so a frame can be labelled, but never converted (see below)

`camconv.formats.Frame` bundles a buffer with its width, height and pixel
format. `Frame.expected_length` gives the byte size a raw frame of that
geometry should have (`None` for JPEG).

## Installation

```
pip install camconv
```

## Encoding to JPEG

```python
from camconv.formats import PixelFormat
from camconv.to_jpg import image_to_jpeg

gray = bytes(range(64)) * 64            # 64x64 grayscale ramp
jpeg = image_to_jpeg(gray, 64, 64, PixelFormat.GRAYSCALE, quality=80)
with open("ramp.jpg", "wb") as fh:
    fh.write(jpeg)
```

Colour sources are encoded with 2x2 chroma subsampling; grayscale sources
produce a single-component image. Quality is clamped to 1–100, so 0 acts as 1.
`image_to_jpeg` keeps at most `camconv.to_jpg.JPEG_BUFFER_SIZE` (128 KiB) of
output; anything longer is cut off. YUV422 images must have an even width.

To stream the output instead, pass a callback that receives
`(offset, chunk)` and returns how many bytes it accepted. An empty chunk
marks the end of the image. `image_to_jpeg_cb` returns the sum of the counts
the callback reported:

```python
from camconv.to_jpg import image_to_jpeg_cb

chunks = []
def sink(offset, chunk):
    chunks.append(chunk)
    return len(chunk)

total = image_to_jpeg_cb(gray, 64, 64, PixelFormat.GRAYSCALE, 80, sink)
```

`frame_to_jpeg(frame, quality)` and `frame_to_jpeg_cb(frame, quality, callback)`
do the same for a `Frame`. `convert_line(src, pixformat, width, line)` returns
one scanline as encoder input (grey bytes, or packed R, G, B).

## Converting to BMP and RGB888

```python
from camconv.to_bmp import image_to_bmp, image_to_rgb888

bmp = image_to_bmp(gray, 64, 64, PixelFormat.GRAYSCALE)
rgb = image_to_rgb888(gray, PixelFormat.GRAYSCALE)
```

BMP files are stored top-down (negative height in the header). Grayscale
images become 8-bit bitmaps with a grey palette; the other formats become
24-bit bitmaps, with RGB565 and YUV422 pixels written in B, G, R order and
RGB888 data stored as given. `bmp_header(...)` builds the 54-byte header on
its own, and `frame_to_bmp(frame)` accepts a `Frame`.

`image_to_rgb888` returns RGB888 data unchanged and converts the other raw
formats to three bytes per pixel in B, G, R order.

## Lower-level pieces

- `camconv.yuv.yuv2rgb(y, u, v)` and `camconv.yuv.iter_yuyv_rgb(data)` for
  table-driven YUV to RGB conversion.
- `camconv.encoder.JpegEncoder(stream, width, height, channels, params)` for
  feeding scanlines one at a time with `process_scanline`, then `finish`.
  `stream` is any object with a `write(data)` method; returning `False` marks
  the write as failed. `channels` may be 1, 3 or 4.
- `camconv.jpeg_core` for `EncoderParams`, `Subsampling`, the colour
  transforms, the forward DCT, quantisation tables and Huffman code
  construction used by the encoder.

Failures raise `camconv.formats.ConversionError`, or its subclass
`camconv.encoder.EncoderError` for encoder set-up and stream-write failures.
Out-of-range arguments to the lower-level functions raise `ValueError`.

## What it does not do

The package has no JPEG decoder. JPEG data cannot be turned into RGB888, RGB565
or BMP: those calls raise `ConversionError`. There is no command-line tool
and no camera capture; the package works only on buffers you supply.

## Running the tests

```
pip install camconv[test]
pytest
```