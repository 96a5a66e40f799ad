"""
Image transcoding with Pillow.

The engine applies one fixed policy (DEFAULT_POLICY) to whatever image it
is given:

1. Decode the bytes (format is sniffed, the hint is only used for interlace)
2. Chroma subsampling 4:2:0
3. Strip metadata (EXIF, ICC profile, XMP, comments)
4. Quality 80
5. Convert to sRGB
6. Choose an interlace scheme from the source format
7. Target format WebP
8. Encode

Lossy WebP always stores chroma at 4:2:0 and has no interlaced layout, so
steps 2 and 6 are checked and reported rather than passed to the encoder as
options.

The engine is synchronous and CPU bound. Callers on the event loop should
run it with asyncio.to_thread. It holds no per-request state, so one
instance can serve concurrent requests.
"""

import io
import logging

from PIL import Image, ImageCms

from .errors import DecodeError, EncodeError
from .models import DEFAULT_POLICY, ImageBlob, OptimizationPolicy

logger = logging.getLogger(__name__)

# Modes littlecms can convert straight into an sRGB RGB/RGBA image
_ICC_CONVERTIBLE_MODES = ("RGB", "RGBA", "CMYK")

_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


class TranscodeEngine:
    """Decode, optimize and re-encode images under an OptimizationPolicy."""

    def __init__(self, policy: OptimizationPolicy = DEFAULT_POLICY) -> None:
        self._policy = policy

    @property
    def policy(self) -> OptimizationPolicy:
        return self._policy

    def transcode(self, data: bytes, format_hint: str = "") -> ImageBlob:
        """
        Re-encode image bytes under the policy.

        Args:
            data: Encoded source image
            format_hint: Source format from the object key (jpg, png, ...)

        Returns:
            ImageBlob holding the encoded target-format bytes

        Raises:
            DecodeError: data is empty, corrupt, or not an image
            EncodeError: the policy cannot be applied or the encoder fails
        """
        if not data:
            raise DecodeError("Image payload is empty")

        interlace = self._policy.interlace_for(format_hint)
        options = self._encoder_options()

        source = self._decode(data)
        try:
            prepared = self._to_srgb(source)
            try:
                if self._policy.strip_metadata:
                    prepared.info.clear()
                encoded = self._encode(prepared, options)
            finally:
                prepared.close()
        finally:
            source.close()

        logger.debug(
            "Transcoded image",
            extra={
                "source_format": format_hint or "unknown",
                "target_format": self._policy.target_format,
                "interlace": interlace.value,
                "size_in": len(data),
                "size_out": len(encoded),
            }
        )

        return ImageBlob(
            data=encoded,
            format_hint=self._policy.target_extension,
            interlace=interlace,
        )

    def _decode(self, data: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(data))
        except _DECODE_ERRORS as e:
            raise DecodeError(f"Cannot decode image: {e}") from e

        try:
            image.load()
        except _DECODE_ERRORS as e:
            image.close()
            raise DecodeError(f"Cannot decode image: {e}") from e

        return image

    def _to_srgb(self, image: Image.Image) -> Image.Image:
        """
        Return a new image in sRGB (RGB, or RGBA when the source has alpha).

        Embedded ICC profiles are honoured through littlecms. Images without
        a profile are assumed to already be sRGB and only change mode.
        """
        has_alpha = image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info
        target_mode = "RGBA" if has_alpha else "RGB"
        icc_profile = image.info.get("icc_profile")

        try:
            if icc_profile and image.mode in _ICC_CONVERTIBLE_MODES:
                converted = ImageCms.profileToProfile(
                    image,
                    ImageCms.ImageCmsProfile(io.BytesIO(icc_profile)),
                    ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")),
                    outputMode="RGBA" if image.mode == "RGBA" else "RGB",
                )
                if converted.mode != target_mode:
                    with converted:
                        return converted.convert(target_mode)
                return converted

            return image.convert(target_mode)

        except (ImageCms.PyCMSError, OSError, ValueError) as e:
            raise EncodeError(
                f"Cannot convert {image.mode} image to {self._policy.colorspace}: {e}"
            ) from e

    def _encoder_options(self) -> dict:
        if tuple(self._policy.chroma_subsampling) != (4, 2, 0):
            raise EncodeError(
                f"{self._policy.target_format} encoder only supports 4:2:0 chroma subsampling"
            )

        return {
            "format": self._policy.target_format,
            "quality": self._policy.quality,
            # lossy mode is what gives us YUV 4:2:0
            "lossless": False,
            "exif": b"",
        }

    def _encode(self, image: Image.Image, options: dict) -> bytes:
        buffer = io.BytesIO()
        try:
            image.save(buffer, **options)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(
                f"Cannot encode image as {self._policy.target_format}: {e}"
            ) from e

        encoded = buffer.getvalue()
        if not encoded:
            raise EncodeError("Encoder produced no output")
        return encoded

