import json

from django.http import JsonResponse

from core.exceptions import BadRequest
from core.http import api_view, form_errors, request_data, validate
from core.logging_utils import get_noc_logger
from noc.forms import NocForm, NocOwnerForm
from noc.services import get_noc_service

logger = get_noc_logger()


def _owners_from(payload):
    """Owners arrive as a JSON array, or as a JSON-encoded string in multipart forms."""
    owners = payload.get('owners') or []
    if isinstance(owners, str):
        try:
            owners = json.loads(owners)
        except ValueError:
            raise BadRequest('"owners" must be a JSON array')
    if not isinstance(owners, list):
        raise BadRequest('"owners" must be a JSON array')

    cleaned = []
    errors = {}
    for position, owner in enumerate(owners):
        if not isinstance(owner, dict):
            errors[str(position)] = ['Expected an object']
            continue
        form = NocOwnerForm(data=owner)
        if form.is_valid():
            cleaned.append(form.cleaned_data)
        else:
            errors[str(position)] = form_errors(form)
    if errors:
        raise BadRequest('Validation failed', errors={'owners': errors})
    return cleaned


@api_view(['GET', 'POST'])
def noc_list(request):
    service = get_noc_service()

    if request.method == 'POST':
        payload = request_data(request)
        if 'community' in request.POST and len(request.POST.getlist('community')) > 1:
            payload['community'] = request.POST.getlist('community')
        owners = _owners_from(payload)
        fields = validate(NocForm, payload)

        noc = service.create(fields, owners, request.FILES)
        logger.user_activity("noc_created", request.user, f"Created NOC {noc.id}")
        return JsonResponse(noc.to_dict(), status=201)

    return JsonResponse([noc.to_dict() for noc in service.find_all()], safe=False)


@api_view(['GET'])
def noc_detail(request, noc_id):
    return JsonResponse(get_noc_service().find_one(noc_id).to_dict())


@api_view(['GET'])
def noc_pdf(request, noc_id):
    return JsonResponse(get_noc_service().get_or_regenerate_pdf(noc_id))
