from django.http import HttpResponse, HttpResponseRedirect, JsonResponse

from core.exceptions import BadRequest
from core.http import api_view, parse_int, request_data
from core.logging_utils import get_uploads_logger
from uploads.storage import BlobStoreError, get_blob_store

logger = get_uploads_logger()

# Thumbnails are immutable per (url, w, q)
OPTIMIZED_CACHE_CONTROL = 'public, max-age=31536000'


@api_view(['POST'])
def upload_file(request):
    uploaded = request.FILES.get('file')
    if uploaded is None:
        raise BadRequest('No file uploaded')

    url = get_blob_store().upload_file(uploaded)
    if not url:
        raise BadRequest('File upload failed')

    logger.user_activity("file_uploaded", request.user, url)
    return JsonResponse({'url': url}, status=201)


@api_view(['DELETE', 'POST'])
def delete_file(request):
    url = request_data(request).get('url')
    if not url:
        raise BadRequest('URL is required')

    get_blob_store().delete(url)
    logger.user_activity("file_deleted", request.user, url)
    return JsonResponse({'message': 'File deleted successfully'})


@api_view(['GET'])
def optimize_image(request):
    url = request.GET.get('url')
    if not url:
        raise BadRequest('URL is required')
    width = parse_int(request.GET.get('w'), 'w', default=300, minimum=1)
    quality = parse_int(request.GET.get('q'), 'q', default=20, minimum=1)

    try:
        data = get_blob_store().get_optimized_image(url, width, min(quality, 95))
    except BlobStoreError:
        return HttpResponseRedirect(url)

    response = HttpResponse(data, content_type='image/jpeg')
    response['Cache-Control'] = OPTIMIZED_CACHE_CONTROL
    return response
