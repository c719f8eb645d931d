from image_delivery.services.authenticator import RequestAuthenticator
from image_delivery.services.cache import cache_headers
from image_delivery.services.expiry import check_expiry
from image_delivery.services.negotiation import negotiate
from image_delivery.services.pipeline import TransformPipeline, TransformStream
from image_delivery.services.signing import UrlIssuer, canonicalize, sign
from image_delivery.services.upload import UploadSigner

__all__ = [
    "RequestAuthenticator",
    "TransformPipeline",
    "TransformStream",
    "UploadSigner",
    "UrlIssuer",
    "cache_headers",
    "canonicalize",
    "check_expiry",
    "negotiate",
    "sign",
]
