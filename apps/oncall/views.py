"""
Read-only views over the on-call directory.
"""

from django.http import JsonResponse

from apps.incidents.views import ApiView
from apps.oncall.directory import OncallDirectory


class OncallEngineerView(ApiView):
    """GET /oncall/<team>/"""

    def get(self, request, team):
        assignment = OncallDirectory().get_assignment(team)
        return JsonResponse(
            {
                "team": team,
                "engineer": assignment.engineer.to_dict(),
                "is_default": assignment.is_default,
            }
        )


class TeamChannelsView(ApiView):
    """GET /oncall/<team>/channels/"""

    def get(self, request, team):
        return JsonResponse({"team": team, "channels": OncallDirectory().get_team_channels(team)})


class EscalationChainView(ApiView):
    """GET /oncall/<team>/escalation/<severity>/"""

    def get(self, request, team, severity):
        return JsonResponse(OncallDirectory().get_escalation_chain(team, severity))
