from django.http import HttpResponse, JsonResponse

from core.http import api_view, request_data
from properties import services


@api_view(['GET', 'POST'])
def draft_list(request):
    if request.method == 'POST':
        draft = services.create_or_update(request_data(request), request.user.pk)
        return JsonResponse(draft.to_dict())

    drafts = services.find_all(request.user.pk)
    return JsonResponse([draft.to_dict() for draft in drafts], safe=False)


@api_view(['GET', 'DELETE'])
def draft_detail(request, draft_id):
    if request.method == 'DELETE':
        services.delete(draft_id, request.user.pk)
        return HttpResponse(status=204)

    return JsonResponse(services.find_one(draft_id, request.user.pk).to_dict())
