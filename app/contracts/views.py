"""
ViewSets for the contracts API.

URL Structure:
    /api/v1/contracts/                        GET, POST
    /api/v1/contracts/{id}/                   GET, PUT, PATCH
    /api/v1/contracts/{id}/sign/              PATCH
    /api/v1/contracts/{id}/complete/          PATCH
    /api/v1/contracts/{id}/cancel/            PATCH
    /api/v1/contracts/{id}/milestones/        POST
    /api/v1/contracts/milestones/{id}/        PATCH

Design Decisions:
    - Views validate input shape and delegate everything else to
      ContractService
    - Party and state errors are raised by the service and rendered by
      core.exception_handler
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsBrand
from contracts.models import Contract, ContractStatus
from contracts.serializers import (
    ContractCreateSerializer,
    ContractDetailSerializer,
    ContractSerializer,
    ContractSignSerializer,
    ContractUpdateSerializer,
    MilestoneCreateSerializer,
    MilestoneSerializer,
    MilestoneUpdateSerializer,
)
from contracts.services import ContractService


@extend_schema_view(
    list=extend_schema(
        operation_id="list_contracts",
        summary="List contracts",
        parameters=[
            OpenApiParameter(
                name="status",
                type=OpenApiTypes.STR,
                enum=ContractStatus.values,
                required=False,
            ),
        ],
        tags=["Contracts"],
    ),
    create=extend_schema(
        operation_id="create_contract",
        summary="Create contract",
        request=ContractCreateSerializer,
        responses={201: ContractDetailSerializer},
        tags=["Contracts"],
    ),
    retrieve=extend_schema(
        operation_id="get_contract",
        summary="Get contract",
        tags=["Contracts"],
    ),
    update=extend_schema(
        operation_id="replace_contract",
        summary="Replace draft contract",
        request=ContractUpdateSerializer,
        responses={200: ContractDetailSerializer},
        tags=["Contracts"],
    ),
    partial_update=extend_schema(
        operation_id="update_contract",
        summary="Update draft contract",
        request=ContractUpdateSerializer,
        responses={200: ContractDetailSerializer},
        tags=["Contracts"],
    ),
)
class ContractViewSet(viewsets.GenericViewSet):
    """
    ViewSet for contract operations.

    list:
        Contracts where the caller is the brand or the creator, newest first.
        Optional ?status= filter.

    create:
        Brand opens a DRAFT contract for a brief it owns and a creator
        whose application to that brief was accepted.

    retrieve:
        Contract with milestones and escrow payments. Parties only.

    update / partial_update:
        Edit a DRAFT contract. Brand party only.

    sign:
        Record the caller's signature. Activates the contract once the
        required signatures are present.

    complete / cancel:
        Close the contract. Refused while escrow money is held.

    milestones:
        Brand party adds a milestone within the contract total.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ContractSerializer
    queryset = Contract.objects.none()
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return Contract.objects.none()
        return ContractService.list_contracts(
            self.request.user,
            status=self.request.query_params.get("status") or None,
        )

    def get_serializer_class(self):
        if self.action == "list":
            return ContractSerializer
        if self.action == "create":
            return ContractCreateSerializer
        if self.action in ("update", "partial_update"):
            return ContractUpdateSerializer
        if self.action == "sign":
            return ContractSignSerializer
        if self.action == "milestones":
            return MilestoneCreateSerializer
        return ContractDetailSerializer

    def get_permissions(self):
        if self.action == "create":
            return [IsAuthenticated(), IsBrand()]
        return [IsAuthenticated()]

    def _detail(self, contract, status_code=status.HTTP_200_OK):
        contract = ContractService.get_contract(self.request.user, contract.pk)
        serializer = ContractDetailSerializer(contract, context={"request": self.request})
        return Response(serializer.data, status=status_code)

    def list(self, request):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = ContractSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(ContractSerializer(queryset, many=True).data)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        contract = ContractService.create_contract(request.user, **serializer.validated_data)
        return self._detail(contract, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        contract = ContractService.get_contract(request.user, pk)
        return Response(ContractDetailSerializer(contract, context={"request": request}).data)

    def update(self, request, pk=None, partial=False):
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        contract = ContractService.update_contract(
            request.user, pk, dict(serializer.validated_data)
        )
        return self._detail(contract)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @extend_schema(
        operation_id="sign_contract",
        summary="Sign contract",
        request=ContractSignSerializer,
        responses={
            200: ContractDetailSerializer,
            400: OpenApiResponse(description="Contract is not awaiting signatures"),
            403: OpenApiResponse(description="Not a party to this contract"),
            404: OpenApiResponse(description="Contract not found"),
        },
        tags=["Contracts"],
    )
    @action(detail=True, methods=["patch"])
    def sign(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        contract = ContractService.sign_contract(
            request.user, pk, serializer.validated_data["signature"]
        )
        return self._detail(contract)

    @extend_schema(
        operation_id="complete_contract",
        summary="Complete contract",
        request=None,
        responses={200: ContractDetailSerializer},
        tags=["Contracts"],
    )
    @action(detail=True, methods=["patch"])
    def complete(self, request, pk=None):
        contract = ContractService.complete_contract(request.user, pk)
        return self._detail(contract)

    @extend_schema(
        operation_id="cancel_contract",
        summary="Cancel contract",
        request=None,
        responses={200: ContractDetailSerializer},
        tags=["Contracts"],
    )
    @action(detail=True, methods=["patch"])
    def cancel(self, request, pk=None):
        contract = ContractService.cancel_contract(request.user, pk)
        return self._detail(contract)

    @extend_schema(
        operation_id="create_milestone",
        summary="Add milestone",
        request=MilestoneCreateSerializer,
        responses={
            200: MilestoneSerializer,
            400: OpenApiResponse(description="Amount exceeds the contract total"),
            403: OpenApiResponse(description="Not the brand party"),
            404: OpenApiResponse(description="Contract not found"),
        },
        tags=["Contracts - Milestones"],
    )
    @action(detail=True, methods=["post"])
    def milestones(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        milestone = ContractService.create_milestone(
            request.user, pk, **serializer.validated_data
        )
        return Response(MilestoneSerializer(milestone).data, status=status.HTTP_200_OK)


class MilestoneDetailView(APIView):
    """
    Update a milestone.

    Either party may edit fields and move the status one step forward.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="update_milestone",
        summary="Update milestone",
        request=MilestoneUpdateSerializer,
        responses={
            200: MilestoneSerializer,
            400: OpenApiResponse(description="Invalid status transition"),
            403: OpenApiResponse(description="Not a party to this contract"),
            404: OpenApiResponse(description="Milestone not found"),
        },
        tags=["Contracts - Milestones"],
    )
    def patch(self, request, milestone_id):
        serializer = MilestoneUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        milestone = ContractService.update_milestone(
            request.user, milestone_id, dict(serializer.validated_data)
        )
        return Response(MilestoneSerializer(milestone).data)
