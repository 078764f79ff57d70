from django import forms
from django.http import JsonResponse

from activity import services
from core.http import api_view, parse_int, request_data, validate


class ActivityLogForm(forms.Form):
    action = forms.CharField(max_length=255)
    description = forms.CharField(required=False)


@api_view(['GET', 'POST'])
def activity_logs(request):
    if request.method == 'POST':
        data = validate(ActivityLogForm, request_data(request))
        entry = services.record_request_activity(request, data['action'], data['description'])
        return JsonResponse(entry.to_dict(), status=201)

    params = request.GET
    result = services.search(
        skip=parse_int(params.get('skip'), 'skip', default=0),
        take=parse_int(params.get('take'), 'take', minimum=1),
        search=params.get('search') or None,
        start_date=params.get('start_date') or params.get('startDate'),
        end_date=params.get('end_date') or params.get('endDate'),
    )
    return JsonResponse(result)
