from django.http import HttpResponse, JsonResponse

from activity.services import record_request_activity
from core.http import api_view, request_data, validate
from core.logging_utils import get_vault_logger
from vault.exceptions import CryptoError
from vault.forms import AgentPasswordForm, PasswordEntryForm
from vault.services import PasswordEntryPatch, get_agent_password_service, get_credential_store

# Get centralized logger
logger = get_vault_logger()

PASSWORD_MANAGER_PERMISSION = 'vault.use_password_manager'


def _no_store(response):
    # Responses carrying decrypted secrets must not be cached
    response['Cache-Control'] = 'no-store, private'
    response['Pragma'] = 'no-cache'
    return response


def _crypto_failure(request, exc, action):
    logger.encryption_event(f"{action} failed: {exc}", request.user, success=False)
    logger.critical(f"Encryption error during {action}", request.user)
    return JsonResponse({'detail': 'Encryption error occurred while processing the entry'}, status=500)


@api_view(['GET', 'POST'], permission=PASSWORD_MANAGER_PERMISSION)
def password_list(request):
    store = get_credential_store()

    if request.method == 'POST':
        data = validate(PasswordEntryForm, request_data(request))
        logger.user_activity("password_entry_creation_attempt", request.user)
        try:
            entry = store.create(
                title=data['title'],
                username=data['username'],
                password=data['password'],
                note=data['note'],
                access_ids=data['access_ids'],
                creator_id=request.user.pk,
            )
        except CryptoError as exc:
            return _crypto_failure(request, exc, "password entry creation")

        record_request_activity(request, 'Created password entry', entry['title'])
        logger.user_activity("password_entry_created", request.user, f"Created password entry {entry['id']}")
        return _no_store(JsonResponse(entry, status=201))

    return JsonResponse(store.list_for_actor(request.user.pk), safe=False)


@api_view(['GET', 'PATCH', 'DELETE'], permission=PASSWORD_MANAGER_PERMISSION)
def password_detail(request, entry_id):
    store = get_credential_store()

    if request.method == 'DELETE':
        store.delete_for_actor(entry_id, request.user.pk)
        record_request_activity(request, 'Deleted password entry', str(entry_id))
        logger.user_activity("password_entry_deleted", request.user, f"Deleted password entry {entry_id}")
        return HttpResponse(status=204)

    try:
        if request.method == 'PATCH':
            changes = validate(PasswordEntryForm, request_data(request), partial=True)
            entry = store.update_for_actor(entry_id, request.user.pk, PasswordEntryPatch.from_dict(changes))
            record_request_activity(request, 'Updated password entry', entry['title'])
            logger.user_activity("password_entry_updated", request.user, f"Updated password entry {entry_id}")
        else:
            entry = store.get_for_actor(entry_id, request.user.pk)
            record_request_activity(request, 'Viewed password entry', entry['title'])
    except CryptoError as exc:
        return _crypto_failure(request, exc, "password entry access")

    return _no_store(JsonResponse(entry))


@api_view(['GET', 'POST'])
def agent_password_list(request):
    service = get_agent_password_service()

    try:
        if request.method == 'POST':
            data = validate(AgentPasswordForm, request_data(request))
            record = service.create(data['agent_id'], data['email'], data['password'])
            logger.user_activity("agent_password_created", request.user, f"Created agent password {record['id']}")
            return _no_store(JsonResponse(record, status=201))

        return _no_store(JsonResponse(service.find_all(), safe=False))
    except CryptoError as exc:
        return _crypto_failure(request, exc, "agent password access")


@api_view(['GET', 'PATCH', 'DELETE'])
def agent_password_detail(request, record_id):
    service = get_agent_password_service()

    if request.method == 'DELETE':
        service.remove(record_id)
        logger.user_activity("agent_password_deleted", request.user, f"Deleted agent password {record_id}")
        return HttpResponse(status=204)

    try:
        if request.method == 'PATCH':
            changes = validate(AgentPasswordForm, request_data(request), partial=True)
            record = service.update(record_id, changes)
            logger.user_activity("agent_password_updated", request.user, f"Updated agent password {record_id}")
        else:
            record = service.find_one(record_id)
    except CryptoError as exc:
        return _crypto_failure(request, exc, "agent password access")

    return _no_store(JsonResponse(record))
