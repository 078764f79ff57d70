from django.http import HttpResponse, JsonResponse

from core.exceptions import BadRequest
from core.http import api_view, request_data, validate
from watermarks.forms import WatermarkForm, WatermarkUpdateForm
from watermarks.models import Watermark
from watermarks.services import get_watermark_service


@api_view(['GET', 'POST'])
def watermark_list(request):
    service = get_watermark_service()

    if request.method == 'POST':
        data = validate(WatermarkForm, request_data(request))
        uploaded = request.FILES.get('file')
        if uploaded is not None:
            watermark = service.create_image(data, uploaded)
        elif data.get('type') == Watermark.Type.IMAGE:
            raise BadRequest('An image file is required for image watermarks')
        else:
            watermark = service.create_text(data)
        return JsonResponse(watermark.to_dict(), status=201)

    return JsonResponse([watermark.to_dict() for watermark in service.find_all()], safe=False)


@api_view(['GET'])
def active_watermark(request):
    watermark = get_watermark_service().get_active()
    return JsonResponse(watermark.to_dict() if watermark else None, safe=False)


@api_view(['POST'])
def deactivate_all(request):
    get_watermark_service().deactivate_all()
    return JsonResponse({'message': 'All watermarks deactivated'})


@api_view(['PATCH', 'DELETE'])
def watermark_detail(request, watermark_id):
    service = get_watermark_service()

    if request.method == 'DELETE':
        service.delete(watermark_id)
        return HttpResponse(status=204)

    changes = validate(WatermarkUpdateForm, request_data(request), partial=True)
    return JsonResponse(service.update(watermark_id, changes).to_dict())


@api_view(['POST'])
def activate(request, watermark_id):
    return JsonResponse(get_watermark_service().activate(watermark_id).to_dict())
